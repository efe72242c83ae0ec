"""
Search-need classifier: ask the LLM whether a question needs fresh information.

The model is prompted to answer with a single affirmative or negative token.
Anything else, or a failed call, is UNDETERMINED, which the policy in
decide() maps to "search" (fail open).
"""

import logging
from enum import Enum

from app.agent.llm import chat_completion
from app.agent.prompts import render_template
from app.core.config import SEARCH_AFFIRMATIVE_TOKEN, SEARCH_NEGATIVE_TOKEN

logger = logging.getLogger(__name__)


class SearchDecision(str, Enum):
    NEEDS_SEARCH = "needs_search"
    NO_SEARCH_NEEDED = "no_search_needed"
    UNDETERMINED = "undetermined"


def parse_decision(text: str) -> SearchDecision:
    """Map raw model output to a decision (trim + uppercase, exact token match)."""
    normalized = (text or "").strip().upper()
    if normalized == SEARCH_AFFIRMATIVE_TOKEN:
        return SearchDecision.NEEDS_SEARCH
    if normalized == SEARCH_NEGATIVE_TOKEN:
        return SearchDecision.NO_SEARCH_NEEDED
    return SearchDecision.UNDETERMINED


def classify_search_need(question: str, template: str) -> SearchDecision:
    """Send the rendered classification prompt as one user turn. Never raises."""
    prompt = render_template(template, question)
    try:
        raw = chat_completion([{"role": "user", "content": prompt}])
    except Exception as e:
        logger.warning("[classifier] decision failed, defaulting to search: %s", e)
        return SearchDecision.UNDETERMINED
    decision = parse_decision(raw)
    logger.info("[classifier] OUT raw=%r decision=%s", raw, decision.value)
    return decision


def needs_search(decision: SearchDecision) -> bool:
    return decision is not SearchDecision.NO_SEARCH_NEEDED


def decide(question: str, template: str) -> bool:
    return needs_search(classify_search_need(question, template))
