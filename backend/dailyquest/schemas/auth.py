from datetime import datetime

from pydantic import Field, field_validator

from dailyquest.schemas.base import CamelModel, validate_wallet_address


class NonceResponse(CamelModel):
    message: str


class ConfirmRequest(CamelModel):
    wallet: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1, description="base58 or comma-separated bytes")

    @field_validator("wallet")
    @classmethod
    def validate_wallet(cls, v: str) -> str:
        return validate_wallet_address(v)


class ConfirmResponse(CamelModel):
    session_token: str


class AccessTokenRequest(CamelModel):
    session_token: str = Field(..., min_length=1)


class AccessTokenResponse(CamelModel):
    access_token: str
    expires_in: int


class CheckSessionResponse(CamelModel):
    """Either the wallet binding or ``error: "Not linked"``."""

    wallet_address: str | None = None
    verified_at: datetime | None = None
    access_token: str | None = None
    error: str | None = None
