"""
API handlers: call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import BackgroundTasks, HTTPException, status
from fastapi.responses import JSONResponse

from app.api.deps import AuthContext
from app.core.chat_db import ChatDB
from app.core.errors import AgentNotFoundError, AgentPermissionError, ProtectedAgentError
from app.schemas.agent import (
    AgentConfig,
    AgentCreate,
    AgentCreatedResponse,
    AgentDeletedResponse,
    AgentUpdate,
    AgentUpdatedResponse,
)
from app.schemas.chat import AgentChatRequest, AgentChatResponse, HistoryResponse, SaveHistoryRequest
from app.services import agent_service
from app.services.history_service import load_history, record_exchange, save_history

logger = logging.getLogger(__name__)


@contextmanager
def service_errors(operation: str) -> Iterator[None]:
    """Translate service exceptions into HTTPException; internals get a generic 500."""
    try:
        yield
    except HTTPException:
        raise
    except ProtectedAgentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except AgentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except AgentPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except Exception as e:
        logger.exception("[handlers] %s failed", operation)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal error while processing {operation}.",
        ) from e


def handle_agent_chat(
    body: AgentChatRequest,
    db: ChatDB,
    auth: AuthContext,
    background_tasks: BackgroundTasks,
) -> AgentChatResponse:
    """Answer the question, then persist the exchange after the response is sent."""
    with service_errors("agent"):
        answer, updated, agent_id = agent_service.chat(
            db, body.message, body.chat_history, body.agent_id, auth.email
        )
    background_tasks.add_task(record_exchange, db, agent_id, auth.email, body.message, answer)
    return AgentChatResponse(response=answer, chat_history=updated)


def handle_create_agent(body: AgentCreate, db: ChatDB, auth: AuthContext) -> AgentCreatedResponse:
    with service_errors("createAgent"):
        agent = agent_service.create_agent(db, body, owner=auth.email)
    return AgentCreatedResponse(message="Agent created successfully.", agent_id=agent.agent_id, name=agent.name)


def handle_update_agent(body: AgentUpdate, db: ChatDB, auth: AuthContext) -> AgentUpdatedResponse:
    with service_errors("updateAgent"):
        agent = agent_service.update_agent(db, body, caller=auth.email)
    return AgentUpdatedResponse(message=f"Agent ID {agent.agent_id} updated successfully.", name=agent.name)


def handle_delete_agent(agent_id: int, db: ChatDB, auth: AuthContext) -> AgentDeletedResponse:
    with service_errors("deleteAgent"):
        removed = agent_service.delete_agent(db, agent_id, caller=auth.email)
    return AgentDeletedResponse(
        message=f"Agent ID {agent_id} and {removed} chat histories deleted successfully.",
        histories_deleted=removed,
    )


def handle_get_agents(db: ChatDB) -> list[AgentConfig]:
    with service_errors("getAgents"):
        return agent_service.list_agents(db)


def handle_get_history(agent_id: int, db: ChatDB, auth: AuthContext) -> HistoryResponse | JSONResponse:
    """404 with an empty list tells the front-end to start a new chat."""
    with service_errors("getChatHistory"):
        messages = load_history(db, agent_id, auth.email)
    if not messages:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"chatHistory": []})
    return HistoryResponse(chat_history=messages)


def handle_save_history(body: SaveHistoryRequest, db: ChatDB, auth: AuthContext) -> dict:
    with service_errors("saveChatHistory"):
        save_history(db, body.agent_id, auth.email, body.chat_history)
    logger.info("[handlers:save_history] agent_id=%d messages=%d", body.agent_id, len(body.chat_history))
    return {"message": "Chat history saved successfully."}
