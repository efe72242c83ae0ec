"""
Integration tests for the HTTP API.

The LLM and web search are mocked; the datastore is a temporary SQLite file
injected through the get_db dependency.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.agent.prompts import DEFAULT_SEARCH_PROMPT, DEFAULT_SYSTEM_PROMPT, render_template
from app.api.deps import get_db
from app.core.chat_db import ChatDB
from app.core.config import IDENTITY_HEADER
from app.core.errors import DatastoreError, LLMError
from app.main import app

OWNER = "ana@example.com"
OTHER = "bruno@example.com"

AGENT_BODY = {
    "AgentName": "Nutricionista",
    "agentFunction": "Orienta sobre alimentação.",
    "systemPrompt": "Você é um nutricionista.",
    "shouldSearchPrompt": 'Precisa buscar? "{question}" Responda SIM ou NÃO.',
}


def auth(email: str = OWNER) -> dict:
    return {IDENTITY_HEADER: email}


@pytest.fixture
def db(tmp_path: Path) -> ChatDB:
    store = ChatDB(tmp_path / "chat.db")
    yield store
    store.close()


@pytest.fixture
def client(db: ChatDB) -> TestClient:
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_agent(client: TestClient, email: str = OWNER) -> int:
    response = client.post("/createAgent", json=AGENT_BODY, headers=auth(email))
    assert response.status_code == 201
    return response.json()["AgentID"]


# --- identity and validation ---

def test_health_needs_no_identity(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.parametrize(
    "method,path,kwargs",
    [
        ("post", "/agent", {"json": {"message": "Olá"}}),
        ("get", "/getAgents", {}),
        ("get", "/getChatHistory", {"params": {"agentId": 1}}),
        ("post", "/saveChatHistory", {"json": {"agentId": 1, "chatHistory": []}}),
        ("post", "/createAgent", {"json": AGENT_BODY}),
        ("delete", "/deleteAgent", {"params": {"agentId": 2}}),
    ],
)
def test_missing_identity_returns_401(client: TestClient, method: str, path: str, kwargs: dict) -> None:
    response = getattr(client, method)(path, **kwargs)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized access. Please log in."}


def test_agent_without_message_returns_400(client: TestClient) -> None:
    with patch("app.agent.classifier.chat_completion") as mock_llm:
        response = client.post("/agent", json={"agentId": 1}, headers=auth())
    assert response.status_code == 400
    assert "error" in response.json()
    mock_llm.assert_not_called()


def test_agent_blank_message_returns_400(client: TestClient) -> None:
    response = client.post("/agent", json={"message": "   "}, headers=auth())
    assert response.status_code == 400


# --- /agent ---

def test_agent_search_path_end_to_end(client: TestClient, db: ChatDB) -> None:
    """Classifier says SIM: one search, two LLM calls, answer returned and persisted."""
    llm = MagicMock(side_effect=["SIM", "Adults: 325-650 mg every 4-6 hours, max 4 g/day."])
    results = [{"title": "Aspirin", "href": "https://example.org", "body": "Usual adult dose 325-650 mg."}]
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm), \
            patch("app.agent.composer.web_search", return_value=results) as mock_search:
        response = client.post(
            "/agent",
            json={"message": "aspirin dosage for adults", "agentId": 1},
            headers=auth(),
        )
    assert response.status_code == 200
    data = response.json()
    assert data["response"]
    assert llm.call_count == 2
    mock_search.assert_called_once()
    assert "aspirin dosage for adults" in mock_search.call_args.args[0]

    system_turn = llm.call_args_list[1].args[0][0]
    assert system_turn["role"] == "system"
    assert system_turn["content"].startswith(DEFAULT_SYSTEM_PROMPT)
    assert "Usual adult dose 325-650 mg." in system_turn["content"]

    assert data["chatHistory"] == [
        {"role": "user", "content": "aspirin dosage for adults"},
        {"role": "assistant", "content": data["response"]},
    ]
    # Background task has run by the time TestClient returns
    assert db.get_history(1, OWNER) == data["chatHistory"]


def test_agent_direct_path_uses_given_history(client: TestClient, db: ChatDB) -> None:
    history = [
        {"role": "user", "content": "Olá"},
        {"role": "assistant", "content": "Olá! Como posso ajudar?"},
    ]
    llm = MagicMock(side_effect=["NÃO", "Um analgésico."])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm), \
            patch("app.agent.composer.web_search") as mock_search:
        response = client.post(
            "/agent",
            json={"message": "O que é dipirona?", "agentId": 1, "chatHistory": history},
            headers=auth(),
        )
    assert response.status_code == 200
    mock_search.assert_not_called()
    messages = llm.call_args_list[1].args[0]
    assert messages[0]["role"] == "system"
    assert messages[1:3] == history
    assert messages[-1] == {"role": "user", "content": "O que é dipirona?"}
    assert response.json()["chatHistory"][:2] == history


def test_agent_without_history_uses_stored_history(client: TestClient, db: ChatDB) -> None:
    stored = [{"role": "user", "content": "antes"}, {"role": "assistant", "content": "resposta antes"}]
    db.upsert_history(1, OWNER, stored)
    llm = MagicMock(side_effect=["NÃO", "agora"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm):
        response = client.post("/agent", json={"message": "e agora?"}, headers=auth())
    assert response.status_code == 200
    assert llm.call_args_list[1].args[0][1:3] == stored
    assert db.get_history(1, OWNER) == stored + [
        {"role": "user", "content": "e agora?"},
        {"role": "assistant", "content": "agora"},
    ]


def test_agent_uses_stored_agent_prompts(client: TestClient) -> None:
    agent_id = _create_agent(client)
    llm = MagicMock(side_effect=["NÃO", "coma frutas"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm):
        response = client.post("/agent", json={"message": "o que comer?", "agentId": agent_id}, headers=auth(OTHER))
    assert response.status_code == 200
    classifier_prompt = llm.call_args_list[0].args[0][0]["content"]
    assert classifier_prompt == 'Precisa buscar? "o que comer?" Responda SIM ou NÃO.'
    assert llm.call_args_list[1].args[0][0]["content"] == AGENT_BODY["systemPrompt"]


def test_agent_unknown_id_falls_back_to_default(client: TestClient, db: ChatDB) -> None:
    llm = MagicMock(side_effect=["NÃO", "ok"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm):
        response = client.post("/agent", json={"message": "oi", "agentId": 42}, headers=auth())
    assert response.status_code == 200
    assert llm.call_args_list[1].args[0][0]["content"] == DEFAULT_SYSTEM_PROMPT
    # Stored under the agent that answered, not the unknown id
    assert db.get_history(42, OWNER) is None
    assert db.get_history(1, OWNER) == response.json()["chatHistory"]


def test_agent_lookup_datastore_error_falls_back_to_default(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    llm = MagicMock(side_effect=["NÃO", "ok"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm), \
            patch.object(db, "get_agent", side_effect=DatastoreError("database is locked")):
        response = client.post("/agent", json={"message": "oi", "agentId": agent_id}, headers=auth())
    assert response.status_code == 200
    assert llm.call_args_list[1].args[0][0]["content"] == DEFAULT_SYSTEM_PROMPT


def test_agent_history_write_failure_still_returns_answer(client: TestClient, db: ChatDB) -> None:
    llm = MagicMock(side_effect=["NÃO", "resposta"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm), \
            patch.object(db, "append_history", side_effect=DatastoreError("disk full")) as mock_append:
        response = client.post("/agent", json={"message": "oi"}, headers=auth())
    assert response.status_code == 200
    assert response.json()["response"] == "resposta"
    mock_append.assert_called_once()


def test_agent_question_is_trimmed_everywhere(client: TestClient, db: ChatDB) -> None:
    llm = MagicMock(side_effect=["NÃO", "resposta"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm):
        response = client.post("/agent", json={"message": "  O que é dipirona?\n"}, headers=auth())
    assert response.status_code == 200
    assert llm.call_args_list[1].args[0][-1] == {"role": "user", "content": "O que é dipirona?"}
    assert response.json()["chatHistory"][0] == {"role": "user", "content": "O que é dipirona?"}
    assert db.get_history(1, OWNER)[0] == {"role": "user", "content": "O que é dipirona?"}


def test_agent_llm_failure_returns_generic_500(client: TestClient, db: ChatDB) -> None:
    with patch("app.agent.classifier.chat_completion", return_value="SIM"), \
            patch("app.agent.composer.web_search", return_value=[]), \
            patch("app.agent.composer.chat_completion", side_effect=LLMError("provider said: secret detail")):
        response = client.post("/agent", json={"message": "pergunta"}, headers=auth())
    assert response.status_code == 500
    body = response.json()
    assert "error" in body
    assert "secret detail" not in body["error"]
    assert db.get_history(1, OWNER) is None


# --- chat history ---

def test_save_then_get_history_round_trip(client: TestClient) -> None:
    history = [
        {"role": "user", "content": "Posso tomar ibuprofeno com café?"},
        {"role": "assistant", "content": "Sim, em geral não há interação relevante."},
    ]
    response = client.post("/saveChatHistory", json={"agentId": 1, "chatHistory": history}, headers=auth())
    assert response.status_code == 200
    assert response.json() == {"message": "Chat history saved successfully."}

    response = client.get("/getChatHistory", params={"agentId": 1}, headers=auth())
    assert response.status_code == 200
    assert response.json() == {"chatHistory": history}


def test_get_history_missing_returns_404_with_empty_list(client: TestClient) -> None:
    response = client.get("/getChatHistory", params={"agentId": 1}, headers=auth())
    assert response.status_code == 404
    assert response.json() == {"chatHistory": []}


def test_get_history_empty_record_returns_404(client: TestClient) -> None:
    client.post("/saveChatHistory", json={"agentId": 1, "chatHistory": []}, headers=auth())
    response = client.get("/getChatHistory", params={"agentId": 1}, headers=auth())
    assert response.status_code == 404
    assert response.json() == {"chatHistory": []}


def test_history_is_private_to_caller(client: TestClient) -> None:
    client.post(
        "/saveChatHistory",
        json={"agentId": 1, "chatHistory": [{"role": "user", "content": "meu"}]},
        headers=auth(OWNER),
    )
    response = client.get("/getChatHistory", params={"agentId": 1}, headers=auth(OTHER))
    assert response.status_code == 404


def test_save_history_normalizes_legacy_roles(client: TestClient) -> None:
    history = [{"role": "human", "content": "q"}, {"role": "ai", "content": "a"}]
    client.post("/saveChatHistory", json={"agentId": 1, "chatHistory": history}, headers=auth())
    response = client.get("/getChatHistory", params={"agentId": 1}, headers=auth())
    assert [m["role"] for m in response.json()["chatHistory"]] == ["user", "assistant"]


def test_save_history_missing_agent_id_returns_400(client: TestClient) -> None:
    response = client.post("/saveChatHistory", json={"chatHistory": []}, headers=auth())
    assert response.status_code == 400


# --- agent CRUD ---

def test_create_agent_returns_201_and_owner_from_identity(client: TestClient) -> None:
    body = dict(AGENT_BODY, createdBy="someone-else@example.com")
    response = client.post("/createAgent", json=body, headers=auth())
    assert response.status_code == 201
    data = response.json()
    assert data["AgentID"] == 2
    assert data["AgentName"] == "Nutricionista"

    agents = client.get("/getAgents", headers=auth()).json()
    assert agents[0]["AgentID"] == 1
    assert agents[1]["AgentID"] == 2
    assert agents[1]["createdBy"] == OWNER


def test_create_agent_template_without_placeholder_returns_400(client: TestClient, db: ChatDB) -> None:
    body = dict(AGENT_BODY, shouldSearchPrompt="Responda SIM ou NÃO.")
    response = client.post("/createAgent", json=body, headers=auth())
    assert response.status_code == 400
    assert db.list_agents() == []


def test_create_agent_missing_name_returns_400(client: TestClient) -> None:
    body = {k: v for k, v in AGENT_BODY.items() if k != "AgentName"}
    response = client.post("/createAgent", json=body, headers=auth())
    assert response.status_code == 400


def test_get_agents_default_only(client: TestClient) -> None:
    response = client.get("/getAgents", headers=auth())
    assert response.status_code == 200
    agents = response.json()
    assert len(agents) == 1
    assert agents[0]["AgentID"] == 1
    assert agents[0]["systemPrompt"] == DEFAULT_SYSTEM_PROMPT


def test_update_agent_by_owner(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    body = dict(AGENT_BODY, AgentID=agent_id, AgentName="Nutricionista Esportivo")
    response = client.put("/updateAgent", json=body, headers=auth())
    assert response.status_code == 200
    assert response.json()["AgentName"] == "Nutricionista Esportivo"
    stored = db.get_agent(agent_id)
    assert stored["AgentName"] == "Nutricionista Esportivo"
    assert stored["createdBy"] == OWNER


def test_update_agent_blank_template_restores_default(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    body = dict(AGENT_BODY, AgentID=agent_id, shouldSearchPrompt="")
    response = client.put("/updateAgent", json=body, headers=auth())
    assert response.status_code == 200
    assert db.get_agent(agent_id).get("shouldSearchPrompt") is None

    llm = MagicMock(side_effect=["NÃO", "ok"])
    with patch("app.agent.classifier.chat_completion", llm), \
            patch("app.agent.composer.chat_completion", llm):
        client.post("/agent", json={"message": "o que comer?", "agentId": agent_id}, headers=auth())
    classifier_prompt = llm.call_args_list[0].args[0][0]["content"]
    assert classifier_prompt == render_template(DEFAULT_SEARCH_PROMPT, "o que comer?")


def test_update_default_agent_returns_400_without_mutation(client: TestClient, db: ChatDB) -> None:
    body = dict(AGENT_BODY, AgentID=1)
    with patch.object(db, "update_agent") as mock_update, patch.object(db, "get_agent") as mock_get:
        response = client.put("/updateAgent", json=body, headers=auth())
    assert response.status_code == 400
    mock_update.assert_not_called()
    mock_get.assert_not_called()


def test_update_agent_not_owner_returns_403(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    body = dict(AGENT_BODY, AgentID=agent_id, AgentName="Sequestrado")
    response = client.put("/updateAgent", json=body, headers=auth(OTHER))
    assert response.status_code == 403
    assert db.get_agent(agent_id)["AgentName"] == "Nutricionista"


def test_update_missing_agent_returns_404(client: TestClient) -> None:
    body = dict(AGENT_BODY, AgentID=77)
    response = client.put("/updateAgent", json=body, headers=auth())
    assert response.status_code == 404


@pytest.mark.parametrize("agent_id", [1, 0, -3])
def test_delete_protected_ids_returns_400_without_mutation(client: TestClient, db: ChatDB, agent_id: int) -> None:
    with patch.object(db, "delete_agent_with_history") as mock_delete, \
            patch.object(db, "get_agent") as mock_get:
        response = client.delete("/deleteAgent", params={"agentId": agent_id}, headers=auth())
    assert response.status_code == 400
    mock_delete.assert_not_called()
    mock_get.assert_not_called()


def test_delete_agent_non_numeric_id_returns_400(client: TestClient) -> None:
    response = client.delete("/deleteAgent", params={"agentId": "abc"}, headers=auth())
    assert response.status_code == 400


def test_delete_agent_not_owner_returns_403_and_keeps_data(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    db.upsert_history(agent_id, OWNER, [{"role": "user", "content": "oi"}])
    response = client.delete("/deleteAgent", params={"agentId": agent_id}, headers=auth(OTHER))
    assert response.status_code == 403
    assert db.get_agent(agent_id) is not None
    assert db.get_history(agent_id, OWNER) == [{"role": "user", "content": "oi"}]


def test_delete_agent_by_owner_removes_config_and_all_histories(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    db.upsert_history(agent_id, OWNER, [{"role": "user", "content": "oi"}])
    db.upsert_history(agent_id, OTHER, [{"role": "user", "content": "olá"}])
    db.upsert_history(1, OTHER, [{"role": "user", "content": "fica"}])

    response = client.delete("/deleteAgent", params={"agentId": agent_id}, headers=auth())
    assert response.status_code == 200
    assert response.json()["historiesDeleted"] == 2
    assert db.get_agent(agent_id) is None
    assert db.get_history(agent_id, OWNER) is None
    assert db.get_history(agent_id, OTHER) is None
    assert db.get_history(1, OTHER) == [{"role": "user", "content": "fica"}]

    agents = client.get("/getAgents", headers=auth()).json()
    assert [a["AgentID"] for a in agents] == [1]


def test_delete_agent_failure_keeps_agent_record(client: TestClient, db: ChatDB) -> None:
    agent_id = _create_agent(client)
    db._connection().execute("DROP TABLE chat_history")
    response = client.delete("/deleteAgent", params={"agentId": agent_id}, headers=auth())
    assert response.status_code == 500
    assert db.get_agent(agent_id) is not None


def test_corrupt_stored_agent_returns_generic_500(client: TestClient, db: ChatDB) -> None:
    db.insert_agent({"AgentName": None, "systemPrompt": "x", "createdBy": OWNER})
    response = client.get("/getAgents", headers=auth())
    assert response.status_code == 500
    assert response.json() == {"error": "Internal error while processing getAgents."}


def test_delete_missing_agent_returns_404(client: TestClient) -> None:
    response = client.delete("/deleteAgent", params={"agentId": 55}, headers=auth())
    assert response.status_code == 404
