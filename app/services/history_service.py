"""
Chat history persistence keyed by (agent id, user email). No HTTP here.
"""

import logging

from app.core.chat_db import ChatDB
from app.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)


def load_history(db: ChatDB, agent_id: int, user_email: str) -> list[ChatMessage] | None:
    """Return the stored history, or None when this user has never chatted with the agent."""
    raw = db.get_history(agent_id, user_email)
    if raw is None:
        logger.info("[history:load] agent_id=%d -> no record", agent_id)
        return None
    messages = [ChatMessage.model_validate(m) for m in raw]
    logger.info("[history:load] agent_id=%d OUT messages=%d", agent_id, len(messages))
    return messages


def save_history(db: ChatDB, agent_id: int, user_email: str, messages: list[ChatMessage]) -> None:
    """Replace the stored history with the given messages."""
    db.upsert_history(agent_id, user_email, [m.model_dump() for m in messages])


def record_exchange(db: ChatDB, agent_id: int, user_email: str, question: str, answer: str) -> None:
    """
    Append one (question, answer) pair to the stored history.
    Best effort: failures are logged and never reach the caller.
    """
    pair = [
        ChatMessage(role="user", content=question).model_dump(),
        ChatMessage(role="assistant", content=answer).model_dump(),
    ]
    try:
        db.append_history(agent_id, user_email, pair)
    except Exception:
        logger.exception("[history:record_exchange] failed to persist agent_id=%d", agent_id)
