from dailyquest.schemas.auth import (
    AccessTokenRequest,
    AccessTokenResponse,
    CheckSessionResponse,
    ConfirmRequest,
    ConfirmResponse,
    NonceResponse,
)
from dailyquest.schemas.challenge import ChallengeResponse
from dailyquest.schemas.health import HealthResponse
from dailyquest.schemas.progress import (
    ClaimResponse,
    ConnectResponse,
    ProgressRequest,
    ProgressResponse,
    ProgressState,
    WalletRequest,
)

__all__ = [
    "AccessTokenRequest",
    "AccessTokenResponse",
    "ChallengeResponse",
    "CheckSessionResponse",
    "ClaimResponse",
    "ConfirmRequest",
    "ConfirmResponse",
    "ConnectResponse",
    "HealthResponse",
    "NonceResponse",
    "ProgressRequest",
    "ProgressResponse",
    "ProgressState",
    "WalletRequest",
]
