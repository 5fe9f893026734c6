"""Shared test utilities."""

import asyncio
from datetime import UTC, datetime, timedelta

import base58
from nacl.signing import SigningKey


def make_wallet() -> tuple[SigningKey, str]:
    """Generate an Ed25519 keypair and its base58 wallet address."""
    signing_key = SigningKey.generate()
    address = base58.b58encode(bytes(signing_key.verify_key)).decode()
    return signing_key, address


def sign(signing_key: SigningKey, message: str) -> str:
    """Sign a message the way a Solana wallet does, base58 encoded."""
    return base58.b58encode(signing_key.sign(message.encode()).signature).decode()


def sign_as_byte_list(signing_key: SigningKey, message: str) -> str:
    """Signature as a stringified Uint8Array: comma-separated byte values."""
    return ",".join(str(b) for b in signing_key.sign(message.encode()).signature)


def tamper(signature: str) -> str:
    """Flip one bit of a base58 signature."""
    raw = bytearray(base58.b58decode(signature))
    raw[10] ^= 0x01
    return base58.b58encode(bytes(raw)).decode()


class FakeClock:
    """Controllable clock for rotation tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 10, 18, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeRewardClient:
    """Stands in for the reward-issuance service."""

    def __init__(self, error: Exception | None = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, int]] = []
        self.keys: list[str] = []

    async def issue(self, wallet: str, amount: int, idempotency_key: str) -> None:
        self.calls.append((wallet, amount))
        self.keys.append(idempotency_key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


class FakeIdentityClient:
    """Stands in for the identity/achievement service."""

    def __init__(self, project: str = "proj-test"):
        self.project = project
        self.xp: list[tuple[str, int]] = []
        self.achievements: list[tuple[str, int]] = []

    async def create_access_token(self, wallet: str) -> str:
        return f"access-{wallet[:6]}"

    async def add_xp(self, wallet: str, amount: int) -> bool:
        self.xp.append((wallet, amount))
        return True

    async def add_achievement(self, wallet: str, badge_index: int) -> bool:
        self.achievements.append((wallet, badge_index))
        return True
