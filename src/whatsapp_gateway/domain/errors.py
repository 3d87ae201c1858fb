"""Domain errors raised by the session services."""


class GatewayError(Exception):
    """Base class for gateway errors."""


class SessionNotFoundError(GatewayError):
    """Raised when no session is registered under an id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class ArtifactNotAvailableError(GatewayError):
    """Raised when a session has no pairing artifact stored."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No pairing artifact for session {session_id}")
        self.session_id = session_id


class DispatchError(GatewayError):
    """Raised when the external client fails an operation."""
