"""Outbound message dispatch through a session's client."""

from dataclasses import dataclass

from whatsapp_gateway.domain.errors import DispatchError
from whatsapp_gateway.services.sessions import SessionRegistry


@dataclass
class MessagingService:
    """Sends text messages through registered sessions."""

    registry: SessionRegistry
    chat_id_suffix: str = "@c.us"

    async def send(self, session_id: str, number: str, message: str) -> None:
        """Send a message; raises SessionNotFoundError or DispatchError."""
        handle = self.registry.get_handle(session_id)
        chat_id = normalize_chat_id(number, self.chat_id_suffix)
        try:
            await handle.client.send_message(chat_id, message)
        except Exception as exc:
            raise DispatchError(str(exc)) from exc


def normalize_chat_id(number: str, suffix: str = "@c.us") -> str:
    """Return the number in chat id form, appending the suffix when missing."""
    if suffix in number:
        return number
    return f"{number}{suffix}"
