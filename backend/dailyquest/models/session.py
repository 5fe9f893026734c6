from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Session:
    """
    Binds a bearer token to a verified wallet for the current day.

    Only ``external_access_token`` is ever added after creation, by replacing
    the stored instance.
    """

    token: str
    wallet_address: str
    verified_at: datetime
    external_access_token: str | None = None


@dataclass(frozen=True)
class PendingNonce:
    wallet_address: str
    nonce: str
    issued_at: datetime
    expires_at: datetime
