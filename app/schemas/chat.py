"""Schemas for the chat and chat-history endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ROLE_ALIASES = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "bot": "assistant",
}


class ChatMessage(BaseModel):
    """One chat turn. Legacy roles (human, ai, bot) are normalized."""

    role: Literal["user", "assistant"]
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, v):
        if isinstance(v, str):
            return _ROLE_ALIASES.get(v.strip().lower(), v)
        return v


class AgentChatRequest(BaseModel):
    """Request body for POST /agent. When chatHistory is omitted the stored history is used."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, description="User question for the agent.")
    chat_history: list[ChatMessage] | None = Field(None, alias="chatHistory")
    agent_id: int = Field(1, alias="agentId", ge=1, description="Agent to answer with; 1 is the default agent.")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v.strip()


class AgentChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str = Field(..., description="Final answer from the agent.")
    chat_history: list[ChatMessage] = Field(default_factory=list, alias="chatHistory")


class SaveHistoryRequest(BaseModel):
    """Request body for POST /saveChatHistory."""

    model_config = ConfigDict(populate_by_name=True)

    agent_id: int = Field(..., alias="agentId", ge=1)
    chat_history: list[ChatMessage] = Field(..., alias="chatHistory")


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_history: list[ChatMessage] = Field(default_factory=list, alias="chatHistory")
