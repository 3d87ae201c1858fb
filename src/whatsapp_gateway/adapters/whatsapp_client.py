"""WhatsApp client adapter backed by a browser-automation bridge."""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

import httpx
from pydantic import BaseModel, ValidationError

from whatsapp_gateway.domain.sessions import (
    AuthFailureEvent,
    BrowserOptions,
    ClientEvent,
    DisconnectedEvent,
    LocalAuth,
    PairingCodeEvent,
    ReadyEvent,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[ClientEvent], None]


class WhatsAppClient(Protocol):
    """Interface for one automation-driven WhatsApp client."""

    async def initialize(self) -> None:
        """Start the client; lifecycle events are reported through the sink."""

    async def send_message(self, chat_id: str, text: str) -> None:
        """Send a text message to a chat id."""

    async def logout(self) -> None:
        """Log the client out of WhatsApp."""

    async def close(self) -> None:
        """Release resources; a closed client never starts consuming events."""


class WhatsAppClientFactory(Protocol):
    """Constructs one client per session id."""

    def __call__(
        self,
        session_id: str,
        auth: LocalAuth,
        options: BrowserOptions,
        emit: EventSink,
    ) -> WhatsAppClient:
        """Create a client that reports its events to ``emit``."""


class BridgeError(RuntimeError):
    """Raised when the automation bridge rejects a request."""


class BridgeEvent(BaseModel):
    """Single line of the bridge event stream."""

    type: str
    qr: str | None = None
    message: str | None = None
    reason: str | None = None


def parse_bridge_event(line: str) -> ClientEvent | None:
    """Translate one NDJSON line into a client event, if it is one we track."""
    try:
        event = BridgeEvent.model_validate_json(line)
    except ValidationError:
        logger.warning("Ignoring malformed bridge event", extra={"line": line})
        return None
    if event.type == "qr" and event.qr:
        return PairingCodeEvent(code=event.qr)
    if event.type == "ready":
        return ReadyEvent()
    if event.type == "auth_failure":
        return AuthFailureEvent(reason=event.message or event.reason)
    if event.type == "disconnected":
        return DisconnectedEvent(reason=event.reason or event.message)
    return None


@dataclass
class HttpxWhatsAppClient(WhatsAppClient):
    """Client that drives one bridge-hosted browser session over HTTP."""

    session_id: str
    auth: LocalAuth
    options: BrowserOptions
    emit: EventSink
    http_client: httpx.AsyncClient
    base_url: str
    _listener: asyncio.Task | None = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    async def initialize(self) -> None:
        """Register the client with the bridge and start consuming its events.

        Does nothing once the client is closed, including when close() ran
        while the registration request was in flight.
        """
        if self._closed:
            return
        payload: dict[str, object] = {
            "clientId": self.session_id,
            "authStrategy": {
                "type": "local",
                "clientId": self.auth.client_id,
                "dataPath": self.auth.data_path,
            },
            "puppeteer": {
                "headless": self.options.headless,
                "args": list(self.options.args),
            },
        }
        response = await self.http_client.post(
            f"{self.base_url}/clients", json=payload, timeout=30
        )
        _raise_for_bridge_error(response)
        if self._closed:
            return
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

    async def send_message(self, chat_id: str, text: str) -> None:
        """Send a message using the bridge's messages endpoint."""
        response = await self.http_client.post(
            f"{self._client_url}/messages",
            json={"chatId": chat_id, "content": text},
            timeout=30,
        )
        _raise_for_bridge_error(response)

    async def logout(self) -> None:
        """Log the bridge-hosted client out."""
        response = await self.http_client.post(f"{self._client_url}/logout", timeout=30)
        _raise_for_bridge_error(response)

    async def close(self) -> None:
        """Stop consuming the event stream and refuse to start a new one."""
        self._closed = True
        listener, self._listener = self._listener, None
        if listener is None or listener is asyncio.current_task():
            return
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass

    @property
    def _client_url(self) -> str:
        return f"{self.base_url}/clients/{self.session_id}"

    async def _listen(self) -> None:
        reason = "event stream closed"
        try:
            async with self.http_client.stream(
                "GET", f"{self._client_url}/events", timeout=None
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    event = parse_bridge_event(line)
                    if event is not None:
                        self.emit(event)
        except httpx.HTTPError as exc:
            logger.exception(
                "Bridge event stream failed", extra={"session_id": self.session_id}
            )
            reason = str(exc) or type(exc).__name__
        self.emit(DisconnectedEvent(reason=reason))


@dataclass
class HttpxWhatsAppClientFactory(WhatsAppClientFactory):
    """Creates bridge clients sharing one httpx connection pool."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, base_url: str, token: str | None = None
    ) -> "HttpxWhatsAppClientFactory":
        """Create a factory with a managed httpx session."""
        headers = {"Authorization": f"Bearer {token}"} if token else None
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers=headers),
        )

    def __call__(
        self,
        session_id: str,
        auth: LocalAuth,
        options: BrowserOptions,
        emit: EventSink,
    ) -> HttpxWhatsAppClient:
        return HttpxWhatsAppClient(
            session_id=session_id,
            auth=auth,
            options=options,
            emit=emit,
            http_client=self.http_client,
            base_url=self.base_url,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


def _raise_for_bridge_error(response: httpx.Response) -> None:
    """Raise a BridgeError carrying the bridge's own error message."""
    if response.is_success:
        return
    message = response.text or response.reason_phrase
    try:
        payload = response.json()
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        message = str(payload["error"])
    raise BridgeError(message)
