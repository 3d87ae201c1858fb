"""Tests for outbound message dispatch."""

import asyncio

import pytest

from whatsapp_gateway.domain.errors import DispatchError, SessionNotFoundError
from whatsapp_gateway.domain.sessions import ReadyEvent
from whatsapp_gateway.services.messaging import MessagingService, normalize_chat_id
from whatsapp_gateway.services.sessions import SessionRegistry


@pytest.mark.parametrize(
    ("number", "expected"),
    [
        ("15551234567", "15551234567@c.us"),
        ("15551234567@c.us", "15551234567@c.us"),
        ("120363041234567890@g.us", "120363041234567890@g.us@c.us"),
    ],
)
def test_normalize_chat_id(number: str, expected: str) -> None:
    assert normalize_chat_id(number) == expected


def test_send_normalizes_number_and_delegates(registry: SessionRegistry) -> None:
    service = MessagingService(registry=registry)

    async def scenario() -> list[tuple[str, str]]:
        session_id = await registry.create()
        handle = registry.get_handle(session_id)
        handle.client.emit(ReadyEvent())
        await handle.events.join()

        await service.send(session_id, "15551234567", "hi")
        return handle.client.sent

    sent = asyncio.run(scenario())

    assert sent == [("15551234567@c.us", "hi")]


def test_send_uses_configured_suffix(registry: SessionRegistry) -> None:
    service = MessagingService(registry=registry, chat_id_suffix="@s.whatsapp.net")

    async def scenario() -> list[tuple[str, str]]:
        session_id = await registry.create()
        await service.send(session_id, "15551234567", "hi")
        return registry.get_handle(session_id).client.sent

    assert asyncio.run(scenario()) == [("15551234567@s.whatsapp.net", "hi")]


def test_send_to_unknown_session_never_reaches_a_client(
    registry: SessionRegistry, client_factory
) -> None:
    service = MessagingService(registry=registry)

    with pytest.raises(SessionNotFoundError):
        asyncio.run(service.send("missing", "15551234567", "hi"))

    assert client_factory.clients == []


def test_send_wraps_client_failure(registry: SessionRegistry, client_factory) -> None:
    client_factory.send_error = RuntimeError("Evaluation failed: chat not found")
    service = MessagingService(registry=registry)

    async def scenario() -> None:
        session_id = await registry.create()
        await service.send(session_id, "15551234567", "hi")

    with pytest.raises(DispatchError, match="Evaluation failed: chat not found"):
        asyncio.run(scenario())
