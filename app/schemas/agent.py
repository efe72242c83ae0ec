"""Schemas for agent configuration records and the agent CRUD endpoints."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.agent.prompts import QUESTION_PLACEHOLDER


def _check_template(v: str | None) -> str | None:
    if v is None or not v.strip():
        return None
    if QUESTION_PLACEHOLDER not in v:
        raise ValueError(f"shouldSearchPrompt must contain the {QUESTION_PLACEHOLDER} placeholder")
    return v


class AgentConfig(BaseModel):
    """A stored (or the built-in default) agent. Serialized with the front-end's field names."""

    model_config = ConfigDict(populate_by_name=True)

    agent_id: int = Field(..., alias="AgentID", ge=1)
    name: str = Field(..., alias="AgentName")
    agent_function: str = Field("", alias="agentFunction")
    system_prompt: str = Field(..., alias="systemPrompt")
    search_prompt_template: str | None = Field(None, alias="shouldSearchPrompt")
    created_by: str | None = Field(None, alias="createdBy")
    created_at: str | None = Field(None, alias="createdAt")
    updated_at: str | None = Field(None, alias="updatedAt")


class AgentCreate(BaseModel):
    """Request body for POST /createAgent. The owner comes from the caller identity."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="AgentName", min_length=1)
    agent_function: str = Field("", alias="agentFunction")
    system_prompt: str = Field(..., alias="systemPrompt", min_length=1)
    search_prompt_template: str | None = Field(None, alias="shouldSearchPrompt")

    @field_validator("search_prompt_template")
    @classmethod
    def _template_has_placeholder(cls, v: str | None) -> str | None:
        return _check_template(v)

    def to_fields(self) -> dict:
        fields = {
            "AgentName": self.name,
            "agentFunction": self.agent_function,
            "systemPrompt": self.system_prompt,
        }
        if self.search_prompt_template is not None:
            fields["shouldSearchPrompt"] = self.search_prompt_template
        return fields


class AgentUpdate(AgentCreate):
    """Request body for PUT /updateAgent."""

    agent_id: int = Field(..., alias="AgentID")

    def to_fields(self) -> dict:
        # Merged into the stored doc: a null template drops back to the default
        fields = super().to_fields()
        fields["shouldSearchPrompt"] = self.search_prompt_template
        return fields


class AgentCreatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    agent_id: int = Field(..., alias="AgentID")
    name: str = Field(..., alias="AgentName")


class AgentUpdatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    name: str = Field(..., alias="AgentName")


class AgentDeletedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    histories_deleted: int = Field(0, alias="historiesDeleted")
