"""
Application errors for clean API error handling.

Services raise these; the API layer (app/api/handlers.py) maps them to HTTP
status codes so services stay free of FastAPI types.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (LLM, search, datastore) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class LLMError(ServiceUnavailableError):
    """The language model call failed or returned nothing."""


class SearchError(ServiceUnavailableError):
    """The web search call failed."""


class DatastoreError(ServiceUnavailableError):
    """The document store could not be read or written."""


class ProtectedAgentError(ValueError):
    """Attempt to mutate the reserved default agent (or an invalid agent id)."""


class AgentNotFoundError(LookupError):
    def __init__(self, agent_id: int) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent ID {agent_id} not found.")


class AgentPermissionError(PermissionError):
    def __init__(self, agent_id: int) -> None:
        self.agent_id = agent_id
        super().__init__(f"Access denied. You are not the creator of agent ID {agent_id}.")
