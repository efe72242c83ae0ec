"""
Chat-completion client shared by the classifier and both composers.

OpenAI is used when OPENAI_API_KEY is set, the Hugging Face router otherwise.
chat_completion raises LLMError on any failure; the search classifier fails
open on it and the composers let it reach the API.
"""

import logging
from typing import Any

import httpx
from openai import OpenAI, OpenAIError

from app.core.config import (
    AGENT_MAX_TOKENS,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)
from app.core.errors import LLMError

logger = logging.getLogger(__name__)

_openai_client: OpenAI | None = None


def _get_openai_client() -> OpenAI:
    global _openai_client
    if _openai_client is None:
        _openai_client = OpenAI(api_key=OPENAI_API_KEY, timeout=LLM_API_TIMEOUT)
    return _openai_client


def _call_openai(messages: list[dict[str, Any]], temperature: float, max_tokens: int) -> str:
    """Call OpenAI chat completions. Returns generated text."""
    try:
        response = _get_openai_client().chat.completions.create(
            model=OPENAI_LLM_MODEL,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except OpenAIError as e:
        raise LLMError(f"OpenAI request failed: {e}") from e
    msg = response.choices[0].message if response.choices else None
    out = (getattr(msg, "content", None) or "").strip()
    logger.info("[llm:openai] OUT response_len=%d", len(out))
    return out


def _call_hf(messages: list[dict[str, Any]], temperature: float, max_tokens: int) -> str:
    """Call Hugging Face router chat completions. Returns generated text."""
    if not HF_API_KEY:
        raise LLMError("No LLM configured: set OPENAI_API_KEY or HF_API_KEY")
    headers = {"Authorization": f"Bearer {HF_API_KEY}", "Content-Type": "application/json"}
    payload = {
        "model": HF_LLM_MODEL,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    try:
        with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
            response = client.post(HF_CHAT_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise LLMError(f"HF request failed: {e}") from e
    if response.status_code != 200:
        logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
        raise LLMError(f"HF LLM returned {response.status_code}")
    try:
        data = response.json()
    except ValueError as e:
        raise LLMError("HF LLM returned invalid JSON") from e
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise LLMError("HF LLM returned no choices")
    msg = choices[0].get("message") or {}
    out = (msg.get("content") or "").strip()
    logger.info("[llm:hf] OUT response_len=%d", len(out))
    return out


def chat_completion(
    messages: list[dict[str, Any]],
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """
    Send role-tagged messages to the LLM and return the completion text.
    Raises LLMError when the provider fails or the completion is empty.
    """
    temperature = LLM_TEMPERATURE if temperature is None else temperature
    max_tokens = max_tokens or AGENT_MAX_TOKENS
    logger.info(
        "[llm] IN  messages=%d roles=%s temperature=%.2f",
        len(messages), [m.get("role") for m in messages], temperature,
    )
    if OPENAI_API_KEY:
        out = _call_openai(messages, temperature, max_tokens)
    else:
        out = _call_hf(messages, temperature, max_tokens)
    if not out:
        raise LLMError("LLM returned an empty completion")
    return out
