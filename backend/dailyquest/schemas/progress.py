from pydantic import Field, field_validator

from dailyquest.models.progress import ProgressRecord
from dailyquest.schemas.base import CamelModel, validate_wallet_address
from dailyquest.schemas.challenge import ChallengeResponse


class ProgressRequest(CamelModel):
    session_token: str | None = None
    wallet_address: str | None = None
    challenge_id: str = Field(..., min_length=1)
    progress: int = Field(..., ge=0)

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet(cls, v: str | None) -> str | None:
        return validate_wallet_address(v)


class ProgressState(CamelModel):
    completed: int
    claimed: bool

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ProgressState":
        return cls(completed=record.completed, claimed=record.claimed)


class ProgressResponse(CamelModel):
    progress: ProgressState


class WalletRequest(CamelModel):
    wallet_address: str = Field(..., min_length=1)

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet(cls, v: str) -> str:
        return validate_wallet_address(v)


class ConnectResponse(CamelModel):
    wallet: str
    challenges: list[ChallengeResponse]
    progress: dict[str, ProgressState]


class ClaimResponse(CamelModel):
    success: bool
    reward: int
