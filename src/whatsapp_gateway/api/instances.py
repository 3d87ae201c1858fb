"""Instance endpoints guarded by the static API key."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import ValidationError

from whatsapp_gateway.api.models import (
    InstanceResponse,
    QrResponse,
    SendRequest,
    SuccessResponse,
)
from whatsapp_gateway.domain.errors import (
    ArtifactNotAvailableError,
    DispatchError,
    SessionNotFoundError,
)

if TYPE_CHECKING:
    from whatsapp_gateway.containers import AppContainer

router = APIRouter(tags=["instances"])


def require_api_key(container: AppContainer, api_key: object) -> str:
    """Return the API key, rejecting anything but the configured string."""
    if not isinstance(api_key, str) or api_key != container.settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key"
        )
    return api_key


async def read_json_body(request: Request) -> dict[str, object]:
    """Return the JSON object body, or an empty dict when there is none."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


@router.post(
    "/instance",
    status_code=status.HTTP_201_CREATED,
    response_model=InstanceResponse,
)
async def create_instance(request: Request) -> InstanceResponse:
    """Create a session and start initializing its client."""
    container: AppContainer = request.app.state.container
    body = await read_json_body(request)
    api_key = require_api_key(container, body.get("apiKey"))
    instance_id = await container.registry.create()
    return InstanceResponse(instance_id=instance_id, api_key=api_key)


@router.get("/qr/{instance_id}", response_model=QrResponse)
async def get_qr(
    instance_id: str,
    request: Request,
    api_key: str | None = Query(default=None, alias="apiKey"),
) -> QrResponse:
    """Return the latest pairing QR code as a data URL."""
    container: AppContainer = request.app.state.container
    require_api_key(container, api_key)
    try:
        qr = container.registry.get_pairing_artifact(instance_id)
    except ArtifactNotAvailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="QR code not available"
        ) from exc
    return QrResponse(qr=qr)


@router.post("/send/{instance_id}", response_model=SuccessResponse)
async def send_message(instance_id: str, request: Request) -> SuccessResponse:
    """Send a text message through an instance."""
    container: AppContainer = request.app.state.container
    body = await read_json_body(request)
    require_api_key(container, body.get("apiKey"))
    try:
        payload = SendRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Number and message required",
        ) from exc
    try:
        await container.messaging_service.send(
            instance_id, payload.number, payload.message
        )
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Client not initialized"
        ) from exc
    except DispatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return SuccessResponse()


@router.post("/logout/{instance_id}", response_model=SuccessResponse)
async def logout(instance_id: str, request: Request) -> SuccessResponse:
    """Log an instance out and re-initialize it for a fresh pairing."""
    container: AppContainer = request.app.state.container
    body = await read_json_body(request)
    require_api_key(container, body.get("apiKey"))
    try:
        await container.registry.logout(instance_id)
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Client not found"
        ) from exc
    except DispatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return SuccessResponse()
