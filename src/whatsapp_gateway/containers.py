"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from whatsapp_gateway.adapters.whatsapp_client import HttpxWhatsAppClientFactory
from whatsapp_gateway.config import Settings, parse_csv
from whatsapp_gateway.domain.sessions import BrowserOptions
from whatsapp_gateway.services.messaging import MessagingService
from whatsapp_gateway.services.sessions import SessionRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    registry: SessionRegistry
    messaging_service: MessagingService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    client_factory = HttpxWhatsAppClientFactory.create(
        base_url=resolved_settings.bridge_url,
        token=resolved_settings.bridge_token,
    )
    registry = SessionRegistry(
        client_factory=client_factory,
        browser_options=BrowserOptions(
            headless=resolved_settings.headless,
            args=tuple(parse_csv(resolved_settings.browser_args)),
        ),
        auth_data_path=resolved_settings.auth_data_path,
        initialize_timeout=resolved_settings.initialize_timeout_seconds,
    )
    messaging_service = MessagingService(
        registry=registry,
        chat_id_suffix=resolved_settings.chat_id_suffix,
    )

    async def close_resources() -> None:
        await client_factory.close()

    return AppContainer(
        settings=resolved_settings,
        registry=registry,
        messaging_service=messaging_service,
        close_resources=close_resources,
    )
