"""
Web search collaborator (ddgs). Ranking and result selection are left to the
search provider; callers treat the returned list as opaque content.
"""

import logging
from typing import Any

from ddgs import DDGS

from app.core.config import SEARCH_MAX_RESULTS
from app.core.errors import SearchError

logger = logging.getLogger(__name__)


def web_search(query: str, max_results: int | None = None) -> list[dict[str, Any]]:
    """Run one text search. Returns the raw result dicts (title, href, body). Raises SearchError."""
    q = (query or "").strip()
    if not q:
        raise SearchError("empty search query")
    limit = max_results or SEARCH_MAX_RESULTS
    logger.info("[search] IN  query=%r max_results=%d", q, limit)
    try:
        with DDGS() as ddgs:
            results = list(ddgs.text(q, max_results=limit))
    except Exception as e:
        logger.warning("[search] web_search failed: %s", e)
        raise SearchError(f"Web search failed: {e}") from e
    logger.info("[search] OUT results=%d", len(results))
    return results
