"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Document store (SQLite file, relative to project root unless absolute)
CHAT_DB_PATH: str = os.getenv("CHAT_DB_PATH", "data/chat.db").strip() or "data/chat.db"

# Identity: the gateway in front of the API puts the authenticated caller's email here
IDENTITY_HEADER: str = os.getenv("IDENTITY_HEADER", "X-User-Email").strip() or "X-User-Email"

# OpenAI (agent LLM). When set, the agent uses OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Hugging Face router chat (fallback when OPENAI_API_KEY is not set)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)

# Generation
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_API_TIMEOUT: float = 60.0
AGENT_MAX_TOKENS: int = int(os.getenv("AGENT_MAX_TOKENS", "1024"))

# Search-need classification. The model is asked to answer with exactly one token.
SEARCH_AFFIRMATIVE_TOKEN: str = os.getenv("SEARCH_AFFIRMATIVE_TOKEN", "SIM").strip().upper()
SEARCH_NEGATIVE_TOKEN: str = os.getenv("SEARCH_NEGATIVE_TOKEN", "NÃO").strip().upper()

# Web search
SEARCH_MAX_RESULTS: int = int(os.getenv("SEARCH_MAX_RESULTS", "3"))

# Direct answers forward at most this many history messages (0 = whole history)
HISTORY_WINDOW: int = int(os.getenv("HISTORY_WINDOW", "20"))

# Agent ID 1 is the built-in default agent; it is never stored or mutated
DEFAULT_AGENT_ID: int = 1
