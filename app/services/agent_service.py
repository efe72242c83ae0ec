"""
Agent: configuration records and answering questions with a chosen agent.

Responsibility: Resolve the agent config (falling back to the built-in
default), enforce ownership and the protected default record on mutations,
and run the agent graph. Called by the API; no HTTP here.
"""

import logging

from app.agent.graph import run_agent
from app.agent.prompts import (
    DEFAULT_AGENT_FUNCTION,
    DEFAULT_AGENT_NAME,
    DEFAULT_SEARCH_PROMPT,
    DEFAULT_SYSTEM_PROMPT,
)
from app.core.chat_db import ChatDB
from app.core.config import DEFAULT_AGENT_ID
from app.core.errors import (
    AgentNotFoundError,
    AgentPermissionError,
    DatastoreError,
    ProtectedAgentError,
)
from app.schemas.agent import AgentConfig, AgentCreate, AgentUpdate
from app.schemas.chat import ChatMessage
from app.services.history_service import load_history

logger = logging.getLogger(__name__)


def default_agent() -> AgentConfig:
    return AgentConfig(
        agent_id=DEFAULT_AGENT_ID,
        name=DEFAULT_AGENT_NAME,
        agent_function=DEFAULT_AGENT_FUNCTION,
        system_prompt=DEFAULT_SYSTEM_PROMPT,
        search_prompt_template=DEFAULT_SEARCH_PROMPT,
        created_by=None,
    )


def get_agent_or_default(db: ChatDB, agent_id: int) -> AgentConfig:
    """Stored agent, or the default on id 1, a lookup miss, or any datastore error."""
    if agent_id == DEFAULT_AGENT_ID:
        return default_agent()
    try:
        doc = db.get_agent(agent_id)
    except DatastoreError as e:
        logger.warning("[agent_service:get_agent_or_default] lookup failed agent_id=%d: %s", agent_id, e)
        return default_agent()
    if doc is None:
        logger.info("[agent_service:get_agent_or_default] agent_id=%d not found -> default", agent_id)
        return default_agent()
    return AgentConfig.model_validate(doc)


def list_agents(db: ChatDB) -> list[AgentConfig]:
    """Default agent first, then stored agents by id."""
    stored = [AgentConfig.model_validate(doc) for doc in db.list_agents()]
    return [default_agent()] + [a for a in stored if a.agent_id != DEFAULT_AGENT_ID]


def create_agent(db: ChatDB, payload: AgentCreate, owner: str) -> AgentConfig:
    fields = payload.to_fields()
    fields["createdBy"] = owner
    doc = db.insert_agent(fields)
    logger.info("[agent_service:create_agent] agent_id=%d by %s", doc["AgentID"], owner)
    return AgentConfig.model_validate(doc)


def _check_mutable(agent_id: int) -> None:
    if agent_id <= DEFAULT_AGENT_ID:
        raise ProtectedAgentError(
            f"Invalid AgentID {agent_id}: the default agent (ID {DEFAULT_AGENT_ID}) cannot be modified or deleted."
        )


def _owned_agent(db: ChatDB, agent_id: int, caller: str) -> AgentConfig:
    doc = db.get_agent(agent_id)
    if doc is None:
        raise AgentNotFoundError(agent_id)
    agent = AgentConfig.model_validate(doc)
    if agent.created_by != caller:
        raise AgentPermissionError(agent_id)
    return agent


def update_agent(db: ChatDB, payload: AgentUpdate, caller: str) -> AgentConfig:
    _check_mutable(payload.agent_id)
    _owned_agent(db, payload.agent_id, caller)
    doc = db.update_agent(payload.agent_id, payload.to_fields())
    if doc is None:
        raise AgentNotFoundError(payload.agent_id)
    logger.info("[agent_service:update_agent] agent_id=%d", payload.agent_id)
    return AgentConfig.model_validate(doc)


def delete_agent(db: ChatDB, agent_id: int, caller: str) -> int:
    """Delete the agent and every user's history with it. Returns history records removed."""
    _check_mutable(agent_id)
    _owned_agent(db, agent_id, caller)
    removed = db.delete_agent_with_history(agent_id)
    if removed is None:
        raise AgentNotFoundError(agent_id)
    logger.info("[agent_service:delete_agent] agent_id=%d histories_removed=%d", agent_id, removed)
    return removed


def _stored_history(db: ChatDB, agent_id: int, caller: str) -> list[ChatMessage]:
    try:
        return load_history(db, agent_id, caller) or []
    except DatastoreError as e:
        logger.warning("[agent_service:chat] could not load stored history: %s", e)
        return []


def chat(
    db: ChatDB,
    question: str,
    history: list[ChatMessage] | None,
    agent_id: int,
    caller: str,
) -> tuple[str, list[ChatMessage], int]:
    """
    Answer a question with the given agent. When history is None the caller's
    stored history is used. Returns (answer, history + the new exchange, id of
    the agent that answered); the id is the default one when the lookup fell back.
    Persisting the exchange is left to the caller.
    """
    question = question.strip()
    agent = get_agent_or_default(db, agent_id)
    context = history if history is not None else _stored_history(db, agent.agent_id, caller)
    logger.info(
        "[agent_service:chat] IN  agent_id=%d agent=%r history_len=%d",
        agent.agent_id, agent.name, len(context),
    )
    result = run_agent(
        question,
        history=[m.model_dump() for m in context],
        system_prompt=agent.system_prompt,
        search_prompt_template=agent.search_prompt_template or DEFAULT_SEARCH_PROMPT,
    )
    answer = result["answer"]
    updated = list(context) + [
        ChatMessage(role="user", content=question),
        ChatMessage(role="assistant", content=answer),
    ]
    return answer, updated, agent.agent_id
