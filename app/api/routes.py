"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.api.deps import AuthContext, get_auth_context, get_db
from app.api.handlers import (
    handle_agent_chat,
    handle_create_agent,
    handle_delete_agent,
    handle_get_agents,
    handle_get_history,
    handle_save_history,
    handle_update_agent,
)
from app.core.chat_db import ChatDB
from app.schemas.agent import (
    AgentConfig,
    AgentCreate,
    AgentCreatedResponse,
    AgentDeletedResponse,
    AgentUpdate,
    AgentUpdatedResponse,
)
from app.schemas.chat import AgentChatRequest, AgentChatResponse, HistoryResponse, SaveHistoryRequest

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Chat ---

@router.post(
    "/agent",
    response_model=AgentChatResponse,
    tags=["chat"],
    summary="Ask an agent a question",
    description="Decides whether a web search is needed, answers, and persists the exchange in the background. "
    "401 without identity, 400 on invalid input, 500 on LLM/search failure.",
)
def post_agent(
    body: AgentChatRequest,
    background_tasks: BackgroundTasks,
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> AgentChatResponse:
    logger.info("[api:post_agent] IN  agent_id=%d message_len=%d", body.agent_id, len(body.message))
    return handle_agent_chat(body, db, auth, background_tasks)


@router.get(
    "/getChatHistory",
    response_model=HistoryResponse,
    tags=["chat"],
    summary="Load the caller's history with an agent",
    description="404 with an empty chatHistory when nothing is stored.",
)
def get_chat_history(
    agent_id: int = Query(..., alias="agentId"),
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    return handle_get_history(agent_id, db, auth)


@router.post("/saveChatHistory", tags=["chat"], summary="Replace the caller's history with an agent")
def save_chat_history(
    body: SaveHistoryRequest,
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> dict:
    return handle_save_history(body, db, auth)


# --- Agents ---

@router.get(
    "/getAgents",
    response_model=list[AgentConfig],
    response_model_exclude_none=True,
    tags=["agents"],
    summary="List agents (default agent first)",
)
def get_agents(
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> list[AgentConfig]:
    return handle_get_agents(db)


@router.post(
    "/createAgent",
    response_model=AgentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["agents"],
    summary="Create an agent owned by the caller",
)
def create_agent(
    body: AgentCreate,
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> AgentCreatedResponse:
    return handle_create_agent(body, db, auth)


@router.put(
    "/updateAgent",
    response_model=AgentUpdatedResponse,
    tags=["agents"],
    summary="Update an agent",
    description="400 for the default agent (ID 1), 404 if missing, 403 if the caller is not the creator.",
)
def update_agent(
    body: AgentUpdate,
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> AgentUpdatedResponse:
    return handle_update_agent(body, db, auth)


@router.delete(
    "/deleteAgent",
    response_model=AgentDeletedResponse,
    tags=["agents"],
    summary="Delete an agent and all of its chat histories",
    description="400 for the default agent (ID 1), 404 if missing, 403 if the caller is not the creator.",
)
def delete_agent(
    agent_id: int = Query(..., alias="agentId"),
    db: ChatDB = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> AgentDeletedResponse:
    return handle_delete_agent(agent_id, db, auth)
