"""Pairing code rendering."""

import base64
import io
from collections.abc import Callable

import qrcode

PairingRenderer = Callable[[str], str]


def render_pairing_artifact(code: str) -> str:
    """Render a pairing code as a base64 PNG data URL."""
    if not code:
        raise ValueError("Pairing code must not be empty")
    image = qrcode.make(code)
    buffer = io.BytesIO()
    image.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{encoded}"
