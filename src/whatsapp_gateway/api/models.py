"""Pydantic models for the instance API payloads."""

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class SendRequest(_ApiModel):
    """Fields of a send message request, validated after the API key check."""

    number: str = Field(min_length=1)
    message: str = Field(min_length=1)


class InstanceResponse(_ApiModel):
    """Identifiers returned for a newly created instance."""

    instance_id: str = Field(alias="instanceId")
    api_key: str = Field(alias="apiKey")


class QrResponse(BaseModel):
    """Rendered pairing code for an instance."""

    qr: str


class SuccessResponse(BaseModel):
    """Acknowledgement for send and logout requests."""

    success: bool = True
