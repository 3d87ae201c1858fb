"""Domain models for messaging client sessions."""

from dataclasses import dataclass
from enum import StrEnum


class SessionState(StrEnum):
    """Lifecycle state of a session handle."""

    INITIALIZING = "INITIALIZING"
    PAIRING = "PAIRING"
    READY = "READY"
    FAILED = "FAILED"
    LOGGED_OUT = "LOGGED_OUT"


TERMINAL_STATES = frozenset({SessionState.FAILED, SessionState.LOGGED_OUT})


@dataclass(frozen=True)
class PairingCodeEvent:
    """The client produced a new pairing code."""

    code: str


@dataclass(frozen=True)
class ReadyEvent:
    """The client finished pairing and can send messages."""


@dataclass(frozen=True)
class AuthFailureEvent:
    """The client rejected the stored or scanned credentials."""

    reason: str | None = None


@dataclass(frozen=True)
class DisconnectedEvent:
    """The client lost its connection."""

    reason: str | None = None


@dataclass(frozen=True)
class InitializationFailedEvent:
    """The client's initialize call raised or timed out."""

    reason: str


ClientEvent = (
    PairingCodeEvent
    | ReadyEvent
    | AuthFailureEvent
    | DisconnectedEvent
    | InitializationFailedEvent
)


@dataclass(frozen=True)
class LocalAuth:
    """Auth strategy keeping credentials on the automation host per client id."""

    client_id: str
    data_path: str | None = None


@dataclass(frozen=True)
class BrowserOptions:
    """Runtime options for the automated browser."""

    headless: bool = True
    args: tuple[str, ...] = ("--no-sandbox", "--disable-setuid-sandbox")
