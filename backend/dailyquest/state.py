"""
In-memory game state for the current day.

GameState wires the challenge catalog, the session broker and the progress
ledger to one lifecycle: every operation first evaluates rotation, and a
rotation clears sessions and progress in the same critical section that
regenerates the challenges.
"""

from collections.abc import Callable
from datetime import datetime

from dailyquest.models.challenge import Challenge
from dailyquest.models.progress import ProgressRecord
from dailyquest.models.session import Session
from dailyquest.services.catalog_service import ChallengeCatalog, utcnow
from dailyquest.services.progress_service import ClaimResult, Payout, ProgressLedger
from dailyquest.services.session_service import SessionBroker


class GameState:
    def __init__(
        self,
        catalog: ChallengeCatalog | None = None,
        sessions: SessionBroker | None = None,
        ledger: ProgressLedger | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.catalog = catalog or ChallengeCatalog()
        self.sessions = sessions or SessionBroker()
        self.ledger = ledger or ProgressLedger()
        self.clock = clock

        self.catalog.on_rotate(lambda _: self.sessions.clear())
        self.catalog.on_rotate(self.ledger.reset)

    def tick(self) -> datetime:
        """Evaluate the day boundary and return the time it was evaluated at."""
        now = self.clock()
        self.catalog.rotate(now)
        return now

    def challenges(self) -> tuple[Challenge, ...]:
        return self.catalog.active(self.clock())

    def issue_nonce(self, wallet: str) -> str:
        return self.sessions.issue_nonce(wallet, self.tick())

    def confirm(self, wallet: str, signature: str) -> str:
        return self.sessions.confirm(wallet, signature, self.tick())

    def check_session(self, token: str) -> Session:
        self.tick()
        return self.sessions.lookup(token)

    def attach_external_token(self, token: str, external_access_token: str) -> Session:
        self.tick()
        return self.sessions.attach_external_token(token, external_access_token)

    def report_progress(
        self,
        challenge_id: str,
        delta: int,
        *,
        wallet: str | None = None,
        session_token: str | None = None,
    ) -> tuple[str, ProgressRecord]:
        """Apply a progress delta. Returns the resolved wallet and the updated record."""
        now = self.tick()
        wallet = self.sessions.resolve_wallet(session_token, wallet)
        challenge = self.catalog.get(challenge_id, now)
        return wallet, self.ledger.report_progress(wallet, challenge, delta)

    def progress_for(self, wallet: str) -> dict[str, ProgressRecord]:
        self.tick()
        return self.ledger.progress_for(wallet)

    async def claim(self, wallet: str, payout: Payout) -> ClaimResult:
        self.tick()
        return await self.ledger.claim(wallet, payout)

    def health(self) -> dict:
        self.tick()
        last_reset = self.catalog.last_reset
        return {
            "status": "OK",
            "lastChallengeReset": last_reset.isoformat() if last_reset else None,
            "sessionCount": self.sessions.count,
        }


game_state = GameState()


def get_state() -> GameState:
    """Dependency for FastAPI endpoints to get the shared game state."""
    return game_state
