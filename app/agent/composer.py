"""
Response composition: the two mutually exclusive answer paths.

SEARCH: one web search, results folded into a system instruction, one LLM call.
DIRECT: system prompt + (windowed) history + question, one LLM call.
Collaborator errors propagate to the caller.
"""

import logging
from typing import Any

from app.agent.llm import chat_completion
from app.agent.prompts import build_augmented_prompt, build_search_query
from app.agent.search import web_search
from app.core.config import HISTORY_WINDOW, SEARCH_MAX_RESULTS

logger = logging.getLogger(__name__)


def compose_with_search(question: str, system_prompt: str) -> str:
    query = build_search_query(question)
    logger.info("[composer:search] IN  query=%r", query)
    search_result = web_search(query, max_results=SEARCH_MAX_RESULTS)
    augmented = build_augmented_prompt(system_prompt, question, search_result)
    answer = chat_completion([
        {"role": "system", "content": augmented},
        {"role": "user", "content": question},
    ])
    logger.info("[composer:search] OUT answer_len=%d", len(answer))
    return answer.strip()


def window_history(history: list[dict[str, Any]], window: int = HISTORY_WINDOW) -> list[dict[str, Any]]:
    """Keep the most recent `window` messages (all of them when window <= 0)."""
    if window <= 0 or len(history) <= window:
        return list(history)
    return list(history[-window:])


def build_direct_messages(
    question: str, history: list[dict[str, Any]], system_prompt: str
) -> list[dict[str, Any]]:
    """System turn first, then history in original order, then the question."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for m in window_history(history):
        messages.append({"role": m["role"], "content": m.get("content") or ""})
    messages.append({"role": "user", "content": question})
    return messages


def compose_direct(question: str, history: list[dict[str, Any]], system_prompt: str) -> str:
    messages = build_direct_messages(question, history, system_prompt)
    logger.info("[composer:direct] IN  history_len=%d sent=%d", len(history), len(messages))
    answer = chat_completion(messages)
    logger.info("[composer:direct] OUT answer_len=%d", len(answer))
    return answer.strip()
