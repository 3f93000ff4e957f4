# app/schemas/verification.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime, timezone

ALLOWED_METHODS = ("sms", "voice")


def to_iso8601(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SendCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber", min_length=1, description="Destination phone number in E.164 format (e.g. +819012345678)")
    method: str = Field("sms", description="Delivery method: 'sms' or 'voice' (defaults to 'sms' when omitted)")

    @field_validator('method', mode='before')
    @classmethod
    def validate_method(cls, v):
        # An explicit null is rejected; only an omitted field takes the default.
        if v not in ALLOWED_METHODS:
            raise ValueError('method must be "sms" or "voice"')
        return v


class VerifyCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber", min_length=1, description="Phone number the code was sent to")
    code: str = Field(..., min_length=1, description="6-digit verification code")


class SendCodeData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    delivery_id: str = Field(..., alias="deliveryId")
    method: str
    expires_at: str = Field(..., alias="expiresAt")


class SendCodeResponse(BaseModel):
    success: bool = True
    message: str
    data: SendCodeData


class VerifyCodeData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber")


class VerifyCodeResponse(BaseModel):
    success: bool = True
    message: str
    data: VerifyCodeData
