"""
Per-wallet challenge progress and the reward claim gate.

Record lifecycle::

    none -> partial -> completed_unclaimed -> claim_pending -> claimed
                                  ^                 |
                                  +--- rollback ----+

Every transition happens under the wallet's lock. ``claim`` marks records
pending inside the lock, releases it for the payout call and re-acquires it
to finalize or roll back, so a slow payout never blocks progress traffic.
"""

import asyncio
import secrets
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

import structlog

from dailyquest.config import settings
from dailyquest.exceptions import (
    ChallengeNotFoundError,
    DailyQuestError,
    ExternalServiceError,
    NoRewardsAvailableError,
    ValidationError,
)
from dailyquest.models.challenge import Challenge
from dailyquest.models.progress import ProgressRecord

logger = structlog.get_logger()

# (wallet, amount, idempotency key)
Payout = Callable[[str, int, str], Awaitable[None]]


@dataclass(frozen=True)
class ClaimResult:
    wallet: str
    reward: int
    challenge_ids: tuple[str, ...]
    badge_indexes: tuple[int, ...]
    claim_id: str


class ProgressLedger:
    def __init__(self):
        self._guard = threading.Lock()
        self._active_ids: frozenset[str] = frozenset()
        self._records: dict[tuple[str, str], ProgressRecord] = {}
        self._wallet_locks: dict[str, threading.Lock] = {}

    def _wallet_lock(self, wallet: str) -> threading.Lock:
        with self._guard:
            lock = self._wallet_locks.get(wallet)
            if lock is None:
                lock = self._wallet_locks[wallet] = threading.Lock()
            return lock

    def _wallet_records(self, wallet: str) -> list[ProgressRecord]:
        with self._guard:
            return [r for (w, _), r in self._records.items() if w == wallet]

    def report_progress(self, wallet: str, challenge: Challenge, delta: int) -> ProgressRecord:
        """
        Add ``delta`` to the wallet's progress on ``challenge``, clamped to its amount.

        Returns a snapshot of the record after the update.
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
            raise ValidationError("progress must be a non-negative integer")

        key = (wallet, challenge.id)
        with self._wallet_lock(wallet):
            with self._guard:
                if challenge.id not in self._active_ids:
                    raise ChallengeNotFoundError(challenge.id)
                record = self._records.get(key)
                if record is None:
                    record = self._records[key] = ProgressRecord(
                        wallet=wallet,
                        challenge_id=challenge.id,
                        amount=challenge.amount,
                        reward=challenge.reward,
                        badge_index=challenge.badge_index,
                    )

            before = record.completed
            record.completed = min(record.completed + delta, record.amount)
            snapshot = replace(record)

        if before < snapshot.amount <= snapshot.completed:
            logger.info(
                "challenge_completed",
                wallet=wallet,
                challenge_id=challenge.id,
                reward=challenge.reward,
            )
        return snapshot

    def progress_for(self, wallet: str) -> dict[str, ProgressRecord]:
        """Snapshot of the wallet's records keyed by challenge id."""
        with self._wallet_lock(wallet):
            return {r.challenge_id: replace(r) for r in self._wallet_records(wallet)}

    def get(self, wallet: str, challenge_id: str) -> ProgressRecord | None:
        with self._wallet_lock(wallet):
            with self._guard:
                record = self._records.get((wallet, challenge_id))
            return replace(record) if record else None

    async def claim(
        self,
        wallet: str,
        payout: Payout,
        timeout_seconds: float | None = None,
    ) -> ClaimResult:
        """
        Pay out every completed, unclaimed challenge for ``wallet``.

        Raises NoRewardsAvailableError if there is nothing to claim, and
        ExternalServiceError if the payout fails or times out. In the latter
        case the records are returned to completed_unclaimed and keep their
        claim id, so the next claim resends exactly that batch with the same
        idempotency key before anything newly completed is paid.
        """
        timeout_seconds = (
            settings.payout_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

        lock = self._wallet_lock(wallet)
        with lock:
            claimable = [r for r in self._wallet_records(wallet) if r.claimable]
            if not claimable:
                raise NoRewardsAvailableError()

            # A rolled-back batch may have been paid anyway; resend it alone
            # under its original key so the reward service can deduplicate
            claim_id = next((r.claim_id for r in claimable if r.claim_id), None)
            if claim_id:
                claimable = [r for r in claimable if r.claim_id == claim_id]
            else:
                claim_id = secrets.token_hex(16)

            for record in claimable:
                record.pending = True
                record.claim_id = claim_id

        total = sum(r.reward for r in claimable)
        challenge_ids = tuple(r.challenge_id for r in claimable)
        logger.info(
            "claim_started",
            wallet=wallet,
            reward=total,
            challenge_ids=challenge_ids,
            claim_id=claim_id,
        )

        try:
            await asyncio.wait_for(payout(wallet, total, claim_id), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            self._rollback(lock, claimable, wallet, reason="timeout")
            raise ExternalServiceError("Reward service", "payout timed out")
        except DailyQuestError as e:
            self._rollback(lock, claimable, wallet, reason=e.message)
            raise
        except BaseException:
            # Cancellation or an unexpected fault must not strand records in claim_pending
            self._rollback(lock, claimable, wallet, reason="unexpected_error")
            raise

        with lock:
            for record in claimable:
                record.pending = False
                record.claimed = True

        logger.info(
            "claim_paid",
            wallet=wallet,
            reward=total,
            challenge_ids=challenge_ids,
            claim_id=claim_id,
        )
        return ClaimResult(
            wallet=wallet,
            reward=total,
            challenge_ids=challenge_ids,
            badge_indexes=tuple(r.badge_index for r in claimable),
            claim_id=claim_id,
        )

    def _rollback(
        self,
        lock: threading.Lock,
        records: list[ProgressRecord],
        wallet: str,
        reason: str,
    ) -> None:
        with lock:
            for record in records:
                record.pending = False
        logger.warning(
            "claim_rolled_back",
            wallet=wallet,
            challenge_ids=[r.challenge_id for r in records],
            reason=reason,
        )

    def reset(self, challenges: tuple[Challenge, ...]) -> None:
        """Drop every record and accept progress only for ``challenges``. Called on rotation."""
        with self._guard:
            dropped = len(self._records)
            self._records = {}
            # Holders of an old lock only touch detached records or yesterday's ids
            self._wallet_locks = {}
            self._active_ids = frozenset(c.id for c in challenges)
        logger.info("progress_cleared", count=dropped)
