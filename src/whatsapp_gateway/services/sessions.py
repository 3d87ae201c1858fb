"""Session registry and lifecycle state machine for WhatsApp clients."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from whatsapp_gateway.adapters.whatsapp_client import (
    WhatsAppClient,
    WhatsAppClientFactory,
)
from whatsapp_gateway.domain.errors import (
    ArtifactNotAvailableError,
    DispatchError,
    SessionNotFoundError,
)
from whatsapp_gateway.domain.sessions import (
    TERMINAL_STATES,
    AuthFailureEvent,
    BrowserOptions,
    ClientEvent,
    DisconnectedEvent,
    InitializationFailedEvent,
    LocalAuth,
    PairingCodeEvent,
    ReadyEvent,
    SessionState,
)
from whatsapp_gateway.services.pairing import PairingRenderer, render_pairing_artifact

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return str(uuid4())


@dataclass
class SessionHandle:
    """One external client bound to a session id.

    The client reports lifecycle events by putting them on ``events``; a
    single consumer task owned by the registry applies them in order.
    """

    session_id: str
    client: WhatsAppClient
    events: asyncio.Queue[ClientEvent]
    state: SessionState = SessionState.INITIALIZING
    consumer: asyncio.Task | None = field(default=None, repr=False)
    initializer: asyncio.Task | None = field(default=None, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class SessionRegistry:
    """Owns every live session handle and its latest pairing artifact."""

    client_factory: WhatsAppClientFactory
    browser_options: BrowserOptions = field(default_factory=BrowserOptions)
    auth_data_path: str | None = None
    initialize_timeout: float | None = None
    renderer: PairingRenderer = render_pairing_artifact
    id_factory: Callable[[], str] = _new_session_id
    _handles: dict[str, SessionHandle] = field(default_factory=dict, init=False)
    _artifacts: dict[str, str] = field(default_factory=dict, init=False)

    async def create(self) -> str:
        """Register a new session and start initializing its client.

        Returns as soon as initialization has been started.
        """
        session_id = self.id_factory()
        while session_id in self._handles:
            session_id = self.id_factory()
        self._start(session_id)
        return session_id

    def get_handle(self, session_id: str) -> SessionHandle:
        """Return the live handle for a session id."""
        handle = self._handles.get(session_id)
        if handle is None:
            raise SessionNotFoundError(session_id)
        return handle

    def get_pairing_artifact(self, session_id: str) -> str:
        """Return the latest rendered pairing artifact for a session id."""
        artifact = self._artifacts.get(session_id)
        if artifact is None:
            raise ArtifactNotAvailableError(session_id)
        return artifact

    def sessions(self) -> list[tuple[str, SessionState]]:
        """Return a snapshot of registered session ids and their states."""
        return [(handle.session_id, handle.state) for handle in self._handles.values()]

    async def remove(self, session_id: str) -> None:
        """Drop a session and its pairing artifact; no-op when absent."""
        handle = self._handles.get(session_id)
        if handle is None:
            self._artifacts.pop(session_id, None)
            return
        await self._retire(handle, SessionState.LOGGED_OUT)

    async def logout(self, session_id: str) -> SessionHandle:
        """Log a session out and immediately re-initialize it under the same id."""
        handle = self.get_handle(session_id)
        try:
            await handle.client.logout()
        except Exception as exc:
            raise DispatchError(str(exc)) from exc
        logger.info("Client logged out", extra={"session_id": session_id})
        await self._retire(handle, SessionState.LOGGED_OUT)
        return self._start(session_id)

    async def close(self) -> None:
        """Retire every session and cancel its background tasks."""
        for handle in list(self._handles.values()):
            if handle.initializer is not None:
                handle.initializer.cancel()
            await self._retire(handle, SessionState.LOGGED_OUT)

    def _start(self, session_id: str) -> SessionHandle:
        existing = self._handles.get(session_id)
        if existing is not None:
            return existing
        events: asyncio.Queue[ClientEvent] = asyncio.Queue()
        client = self.client_factory(
            session_id,
            LocalAuth(client_id=session_id, data_path=self.auth_data_path),
            self.browser_options,
            events.put_nowait,
        )
        handle = SessionHandle(session_id=session_id, client=client, events=events)
        self._handles[session_id] = handle
        handle.consumer = asyncio.create_task(self._consume(handle))
        handle.initializer = asyncio.create_task(self._initialize(handle))
        return handle

    async def _initialize(self, handle: SessionHandle) -> None:
        try:
            if self.initialize_timeout is None:
                await handle.client.initialize()
            else:
                await asyncio.wait_for(
                    handle.client.initialize(), timeout=self.initialize_timeout
                )
        except Exception as exc:
            logger.exception(
                "Client initialization failed",
                extra={"session_id": handle.session_id},
            )
            reason = str(exc) or type(exc).__name__
            handle.events.put_nowait(InitializationFailedEvent(reason=reason))

    async def _consume(self, handle: SessionHandle) -> None:
        while not handle.is_terminal:
            event = await handle.events.get()
            try:
                await self._apply(handle, event)
            finally:
                handle.events.task_done()

    async def _apply(self, handle: SessionHandle, event: ClientEvent) -> None:
        """Apply one client event to a handle."""
        session_id = handle.session_id
        if handle.is_terminal:
            return
        if isinstance(event, PairingCodeEvent):
            if handle.state not in {SessionState.INITIALIZING, SessionState.PAIRING}:
                logger.warning(
                    "Ignoring pairing code in state %s",
                    handle.state,
                    extra={"session_id": session_id},
                )
                return
            logger.info("Pairing code issued", extra={"session_id": session_id})
            try:
                artifact = self.renderer(event.code)
            except Exception:
                logger.exception(
                    "Pairing code rendering failed", extra={"session_id": session_id}
                )
                return
            self._artifacts[session_id] = artifact
            handle.state = SessionState.PAIRING
            return
        if isinstance(event, ReadyEvent):
            if handle.state not in {SessionState.INITIALIZING, SessionState.PAIRING}:
                return
            logger.info("Client ready", extra={"session_id": session_id})
            handle.state = SessionState.READY
            return
        if isinstance(event, AuthFailureEvent):
            logger.error(
                "Authentication failure: %s",
                event.reason,
                extra={"session_id": session_id},
            )
            await self._retire(handle, SessionState.FAILED)
            return
        if isinstance(event, InitializationFailedEvent):
            await self._retire(handle, SessionState.FAILED)
            return
        if isinstance(event, DisconnectedEvent):
            logger.info(
                "Client disconnected: %s",
                event.reason,
                extra={"session_id": session_id},
            )
            await self._retire(handle, SessionState.LOGGED_OUT)

    async def _retire(self, handle: SessionHandle, state: SessionState) -> None:
        """Move a handle to a terminal state and release what it owns."""
        if handle.is_terminal:
            return
        handle.state = state
        if self._handles.get(handle.session_id) is handle:
            del self._handles[handle.session_id]
            self._artifacts.pop(handle.session_id, None)
        consumer = handle.consumer
        if consumer is not None and consumer is not asyncio.current_task():
            consumer.cancel()
        await handle.client.close()
