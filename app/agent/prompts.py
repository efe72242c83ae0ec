"""
Prompt templates and the built-in default agent (ID 1, pharmaceutical assistant).
"""

import json
from typing import Any

QUESTION_PLACEHOLDER = "{question}"

DEFAULT_AGENT_NAME = "Assistente Farmacêutico"
DEFAULT_AGENT_FUNCTION = "Responde dúvidas sobre medicamentos e dosagens."

DEFAULT_SYSTEM_PROMPT = """Você é um Assistente farmacêutico especializado em medicamentos e dosagens.
Use a ferramenta de busca quando precisar de informações atualizadas ou específicas.
Seja claro, conciso e forneça informações precisas."""

DEFAULT_SEARCH_PROMPT = """Analise se esta pergunta sobre medicamentos precisa de busca por informações atualizadas:

Pergunta: "{question}"

Responda APENAS com "SIM" ou "NÃO":
- "SIM": para informações recentes, dosagens específicas, atualizações, interações medicamentosas
- "NÃO": para conceitos básicos, definições, perguntas gerais

Resposta:"""

SEARCH_QUERY_PREFIX = "informações farmacêuticas sobre: "


def render_template(template: str, question: str, placeholder: str = QUESTION_PLACEHOLDER) -> str:
    """Substitute the first occurrence of the placeholder with the question."""
    return template.replace(placeholder, question, 1)


def build_search_query(question: str) -> str:
    return f"{SEARCH_QUERY_PREFIX}{question}"


def build_augmented_prompt(system_prompt: str, question: str, search_result: Any) -> str:
    """System instruction for the search path: persona + found information + the question."""
    found = json.dumps(search_result, ensure_ascii=False, default=str)
    return f"""{system_prompt}

Baseie sua resposta nestas informações encontradas:

INFORMAÇÕES ENCONTRADAS:
{found}

PERGUNTA DO USUÁRIO:
{question}

Responda de forma clara e organizada:"""
