"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from whatsapp_gateway.adapters.whatsapp_client import (
    EventSink,
    WhatsAppClient,
    WhatsAppClientFactory,
)
from whatsapp_gateway.config import Settings
from whatsapp_gateway.containers import AppContainer
from whatsapp_gateway.domain.sessions import (
    BrowserOptions,
    LocalAuth,
    PairingCodeEvent,
)
from whatsapp_gateway.services.messaging import MessagingService
from whatsapp_gateway.services.sessions import SessionRegistry


@dataclass
class FakeWhatsAppClient(WhatsAppClient):
    """Fake client that records calls and lets tests emit events."""

    session_id: str
    auth: LocalAuth
    options: BrowserOptions
    emit: EventSink
    pairing_codes: list[str] = field(default_factory=list)
    initialize_delay: float = 0
    initialize_error: Exception | None = None
    send_error: Exception | None = None
    logout_error: Exception | None = None
    sent: list[tuple[str, str]] = field(default_factory=list)
    initialized: bool = False
    logged_out: bool = False
    closed: bool = False

    async def initialize(self) -> None:
        if self.initialize_delay:
            await asyncio.sleep(self.initialize_delay)
        if self.initialize_error is not None:
            raise self.initialize_error
        self.initialized = True
        for code in self.pairing_codes:
            self.emit(PairingCodeEvent(code=code))

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, text))

    async def logout(self) -> None:
        if self.logout_error is not None:
            raise self.logout_error
        self.logged_out = True

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeWhatsAppClientFactory(WhatsAppClientFactory):
    """Factory producing fake clients configured from its own attributes."""

    pairing_codes: list[str] = field(default_factory=list)
    initialize_delay: float = 0
    initialize_error: Exception | None = None
    send_error: Exception | None = None
    logout_error: Exception | None = None
    clients: list[FakeWhatsAppClient] = field(default_factory=list)

    def __call__(
        self,
        session_id: str,
        auth: LocalAuth,
        options: BrowserOptions,
        emit: EventSink,
    ) -> FakeWhatsAppClient:
        client = FakeWhatsAppClient(
            session_id=session_id,
            auth=auth,
            options=options,
            emit=emit,
            pairing_codes=list(self.pairing_codes),
            initialize_delay=self.initialize_delay,
            initialize_error=self.initialize_error,
            send_error=self.send_error,
            logout_error=self.logout_error,
        )
        self.clients.append(client)
        return client

    def clients_for(self, session_id: str) -> list[FakeWhatsAppClient]:
        return [client for client in self.clients if client.session_id == session_id]


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-api-key", bridge_url="http://bridge.test")


@pytest.fixture
def client_factory() -> FakeWhatsAppClientFactory:
    return FakeWhatsAppClientFactory()


@pytest.fixture
def registry(client_factory: FakeWhatsAppClientFactory) -> SessionRegistry:
    return SessionRegistry(client_factory=client_factory)


@pytest.fixture
def container(settings: Settings, registry: SessionRegistry) -> AppContainer:
    messaging_service = MessagingService(
        registry=registry, chat_id_suffix=settings.chat_id_suffix
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        registry=registry,
        messaging_service=messaging_service,
        close_resources=close_resources,
    )
