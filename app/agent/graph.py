"""
LangGraph agent: classify search need → (search answer | direct answer) → END.

Two terminal paths, exactly one runs per question. Nodes call the classifier
and composer modules; no HTTP or datastore access here.
"""

import logging
from typing import Literal, TypedDict

from langgraph.graph import END, StateGraph

from app.agent.classifier import SearchDecision, classify_search_need, needs_search
from app.agent.composer import compose_direct, compose_with_search

logger = logging.getLogger(__name__)


class AgentState(TypedDict):
    question: str
    chat_history: list  # list of {"role": "user"|"assistant", "content": str}
    system_prompt: str
    search_prompt_template: str
    decision: str
    searched: bool
    answer: str


def _classify(state: AgentState) -> dict:
    """Node 1: ask the LLM whether the question needs a web search (fails open)."""
    decision = classify_search_need(state["question"], state["search_prompt_template"])
    logger.info("[graph:classify] OUT decision=%s", decision.value)
    return {"decision": decision.value}


def _search_answer(state: AgentState) -> dict:
    """Node 2a: answer grounded on web search results."""
    answer = compose_with_search(state["question"], state["system_prompt"])
    return {"answer": answer, "searched": True}


def _direct_answer(state: AgentState) -> dict:
    """Node 2b: answer from the model's own knowledge and the conversation."""
    answer = compose_direct(state["question"], state.get("chat_history") or [], state["system_prompt"])
    return {"answer": answer, "searched": False}


def _route_after_classify(state: AgentState) -> Literal["search_answer", "direct_answer"]:
    decision = SearchDecision(state.get("decision") or SearchDecision.UNDETERMINED.value)
    next_node = "search_answer" if needs_search(decision) else "direct_answer"
    logger.info("[graph:route_after_classify] decision=%s -> %s", decision.value, next_node)
    return next_node


def build_graph():
    """
    Build and compile the agent graph.
    classify → (search_answer | direct_answer) → END.
    """
    graph = StateGraph(AgentState)

    graph.add_node("classify", _classify)
    graph.add_node("search_answer", _search_answer)
    graph.add_node("direct_answer", _direct_answer)

    graph.set_entry_point("classify")
    graph.add_conditional_edges("classify", _route_after_classify)
    graph.add_edge("search_answer", END)
    graph.add_edge("direct_answer", END)

    return graph.compile()


_graph = None


def _get_graph():
    global _graph
    if _graph is None:
        _graph = build_graph()
    return _graph


def run_agent(
    question: str,
    history: list | None = None,
    system_prompt: str = "",
    search_prompt_template: str = "",
) -> dict:
    """
    Run the agent synchronously. Returns answer, searched, decision.
    history: optional list of {"role": "user"|"assistant", "content": str}, used on the direct path.
    """
    if not question or not str(question).strip():
        raise ValueError("question is required")
    q = str(question).strip()
    hist = history if history is not None else []
    logger.info("[run_agent] START question=%r history_len=%d", q, len(hist))
    initial: AgentState = {
        "question": q,
        "chat_history": hist,
        "system_prompt": system_prompt,
        "search_prompt_template": search_prompt_template,
        "decision": "",
        "searched": False,
        "answer": "",
    }
    final = _get_graph().invoke(initial)
    answer = (final.get("answer") or "").strip()
    logger.info("[run_agent] END searched=%s answer_len=%d", final.get("searched"), len(answer))
    return {
        "answer": answer,
        "searched": bool(final.get("searched")),
        "decision": final.get("decision") or SearchDecision.UNDETERMINED.value,
    }
