# Run from project root: streamlit run app/ui.py
# UI talks to backend API (GET /getAgents, POST /agent, GET /getChatHistory, POST /saveChatHistory,
# POST /createAgent, PUT /updateAgent, DELETE /deleteAgent). Chat history is stored on server per (agent, user).

import os

import requests
import streamlit as st

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")
IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-User-Email")
DEFAULT_AGENT_ID = 1

st.title("Agent Chat")

# Identity normally comes from the gateway; locally the user types it in
email = st.sidebar.text_input("Signed in as (email)", key="user_email").strip()
if not email:
    st.info("Enter your email in the sidebar to start.")
    st.stop()
headers = {IDENTITY_HEADER: email}


def load_agents() -> list[dict]:
    try:
        r = requests.get(f"{API_BASE}/getAgents", headers=headers, timeout=10)
    except requests.RequestException:
        st.caption("Backend not reachable. Start the API first.")
        return []
    if not r.ok:
        st.caption(f"Could not load agents: {r.status_code}")
        return []
    return r.json()


def load_history(agent_id: int) -> list[dict]:
    try:
        r = requests.get(f"{API_BASE}/getChatHistory", params={"agentId": agent_id}, headers=headers, timeout=10)
    except requests.RequestException:
        return []
    if r.status_code == 404 or not r.ok:
        return []
    return r.json().get("chatHistory") or []


agents = load_agents()
if not agents:
    st.stop()

by_id = {a["AgentID"]: a for a in agents}
agent_id = st.sidebar.selectbox(
    "Agent",
    list(by_id),
    format_func=lambda i: f"{i}: {by_id[i].get('AgentName', '')}",
    key="agent_id",
)
agent = by_id[agent_id]
if agent.get("agentFunction"):
    st.sidebar.caption(agent["agentFunction"])

# Reload history from the server whenever the agent (or user) changes
history_key = (agent_id, email)
if st.session_state.get("history_key") != history_key:
    st.session_state.history_key = history_key
    st.session_state.messages = load_history(agent_id)

if st.sidebar.button("New chat", key="new_chat"):
    try:
        requests.post(
            f"{API_BASE}/saveChatHistory",
            json={"agentId": agent_id, "chatHistory": []},
            headers=headers,
            timeout=10,
        )
    except requests.RequestException as e:
        st.sidebar.error(f"Could not clear history: {e}")
    st.session_state.messages = []
    st.rerun()

# --- Agent management ---

with st.expander("Create agent"):
    with st.form("create_agent", clear_on_submit=True):
        name = st.text_input("Name", key="new_name")
        function = st.text_input("Function (short description)", key="new_function")
        system_prompt = st.text_area("System prompt", height=150, key="new_system_prompt")
        search_prompt = st.text_area("Search decision prompt (must contain {question}; blank = default)", height=150, key="new_search_prompt")
        if st.form_submit_button("Create"):
            payload = {
                "AgentName": name,
                "agentFunction": function,
                "systemPrompt": system_prompt,
                "shouldSearchPrompt": search_prompt or None,
            }
            r = requests.post(f"{API_BASE}/createAgent", json=payload, headers=headers, timeout=10)
            if r.status_code == 201:
                st.success(f"Agent created (ID {r.json().get('AgentID')}).")
                st.rerun()
            else:
                st.error(r.json().get("error", r.text[:200]))

owns_agent = agent_id > DEFAULT_AGENT_ID and agent.get("createdBy") == email
if owns_agent:
    with st.expander("Edit or delete this agent"):
        with st.form("edit_agent"):
            name = st.text_input("Name", value=agent.get("AgentName", ""), key=f"edit_name_{agent_id}")
            function = st.text_input("Function", value=agent.get("agentFunction", ""), key=f"edit_function_{agent_id}")
            system_prompt = st.text_area("System prompt", value=agent.get("systemPrompt", ""), height=150, key=f"edit_system_prompt_{agent_id}")
            search_prompt = st.text_area("Search decision prompt", value=agent.get("shouldSearchPrompt", "") or "", height=150, key=f"edit_search_prompt_{agent_id}")
            if st.form_submit_button("Save"):
                payload = {
                    "AgentID": agent_id,
                    "AgentName": name,
                    "agentFunction": function,
                    "systemPrompt": system_prompt,
                    "shouldSearchPrompt": search_prompt or None,
                }
                r = requests.put(f"{API_BASE}/updateAgent", json=payload, headers=headers, timeout=10)
                if r.ok:
                    st.success("Agent updated.")
                    st.rerun()
                else:
                    st.error(r.json().get("error", r.text[:200]))
        confirm = st.checkbox("I understand this deletes the agent and every user's history with it", key="confirm_delete")
        if st.button("Delete agent", disabled=not confirm, key="delete_agent"):
            r = requests.delete(f"{API_BASE}/deleteAgent", params={"agentId": agent_id}, headers=headers, timeout=10)
            if r.ok:
                st.success(r.json().get("message", "Deleted."))
                st.session_state.pop("history_key", None)
                st.session_state.pop("agent_id", None)
                st.rerun()
            else:
                st.error(r.json().get("error", r.text[:200]))
elif agent_id == DEFAULT_AGENT_ID:
    st.caption("The default agent cannot be edited or deleted.")

st.divider()

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

if prompt := st.chat_input(f"Ask {agent.get('AgentName', 'the agent')}"):
    with st.chat_message("user"):
        st.markdown(prompt)
    with st.chat_message("assistant"):
        thinking = st.empty()
        thinking.caption("Thinking...")
        try:
            r = requests.post(
                f"{API_BASE}/agent",
                json={"message": prompt, "agentId": agent_id, "chatHistory": st.session_state.messages},
                headers=headers,
                timeout=90,
            )
            thinking.empty()
            if r.ok:
                data = r.json()
                st.markdown(data.get("response", ""))
                st.session_state.messages = data.get("chatHistory") or []
            else:
                st.error(r.json().get("error", f"Error: {r.status_code}"))
        except requests.RequestException as e:
            thinking.empty()
            st.error(f"Connection failed: {e}")
