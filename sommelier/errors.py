"""Error taxonomy for the agent platform integration and LLM pass-through."""

from typing import List, Optional


class SommelierError(Exception):
    """Base class for errors surfaced to the HTTP layer."""


class ConfigurationError(SommelierError):
    """Required secrets or settings are missing. Fatal for the request only."""


class AuthError(SommelierError):
    """The OAuth client-credentials exchange was rejected."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Salesforce authentication failed: {status} - {body}")


class RelayError(SommelierError):
    """No reply could be extracted from one message endpoint shape."""

    def __init__(self, strategy: str, message: str, status: Optional[int] = None, body: str = ""):
        self.strategy = strategy
        self.status = status
        self.body = body
        detail = f"{strategy}: {message}"
        if status is not None:
            detail += f" ({status})"
        super().__init__(detail)


class OrchestrationError(SommelierError):
    """Every message endpoint shape in the fallback chain failed."""

    def __init__(self, hint: str, attempts: List[RelayError]):
        self.hint = hint
        self.attempts = attempts
        tried = "; ".join(str(a) for a in attempts) or "no attempts"
        super().__init__(f"All Agentforce message endpoints failed ({tried})")
