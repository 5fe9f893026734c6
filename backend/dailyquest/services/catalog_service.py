"""
Daily challenge catalog.

The catalog owns the day's challenge set and is the single place the day
boundary is checked. Rotation runs lazily from every read path; stores that
share the day's lifecycle register a reset hook and are cleared inside the
same critical section as the regeneration.
"""

import random
import threading
from collections.abc import Callable
from datetime import UTC, date, datetime

import structlog

from dailyquest.config import settings
from dailyquest.exceptions import ChallengeNotFoundError
from dailyquest.models.challenge import Challenge

logger = structlog.get_logger()

VERBS = ("Defeat", "Collect", "Complete")
TARGETS = ("enemies", "coins", "levels")


def utcnow() -> datetime:
    return datetime.now(UTC)


def calendar_day(now: datetime) -> date:
    """Calendar day of ``now`` in UTC. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(UTC).date()


def generate_daily_challenges(
    now: datetime,
    count: int | None = None,
    rng: random.Random | None = None,
) -> tuple[Challenge, ...]:
    """Build a fresh batch of challenges with randomised amount and reward."""
    rng = rng or random.Random()
    count = settings.challenges_per_day if count is None else count
    stamp = int(now.timestamp() * 1000)

    return tuple(
        Challenge(
            id=f"daily_{stamp}_{i}",
            verb=rng.choice(VERBS),
            target=rng.choice(TARGETS),
            amount=rng.randint(settings.challenge_amount_min, settings.challenge_amount_max),
            reward=rng.randint(settings.reward_units_min, settings.reward_units_max) * 10,
            badge_index=i,
        )
        for i in range(count)
    )


class ChallengeCatalog:
    def __init__(
        self,
        count: int | None = None,
        rng: random.Random | None = None,
    ):
        self._count = count
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._day: date | None = None
        self._last_reset: datetime | None = None
        self._challenges: tuple[Challenge, ...] = ()
        self._reset_hooks: list[Callable[[tuple[Challenge, ...]], None]] = []

    def on_rotate(self, hook: Callable[[tuple[Challenge, ...]], None]) -> None:
        """Register a store to be reset with the new set whenever the day rolls over."""
        self._reset_hooks.append(hook)

    @property
    def current_day(self) -> date | None:
        return self._day

    @property
    def last_reset(self) -> datetime | None:
        return self._last_reset

    def rotate(self, now: datetime | None = None) -> bool:
        """
        Roll over to ``now``'s calendar day if it differs from the stored one.

        Returns True if a rotation happened. Calls within the same day are
        no-ops, and so are calls carrying a timestamp from an earlier day: a
        request that read the clock just before midnight may arrive after
        the rotation it would otherwise undo.
        """
        now = now or utcnow()
        today = calendar_day(now)

        with self._lock:
            if self._day is not None and today <= self._day:
                return False

            challenges = generate_daily_challenges(now, self._count, self._rng)
            for hook in self._reset_hooks:
                hook(challenges)
            self._challenges = challenges
            self._day = today
            self._last_reset = now

        logger.info(
            "challenges_rotated",
            day=today.isoformat(),
            challenge_ids=[c.id for c in challenges],
        )
        return True

    def active(self, now: datetime | None = None) -> tuple[Challenge, ...]:
        """Current challenge set, rotating first if the day has changed."""
        self.rotate(now)
        with self._lock:
            return self._challenges

    def get(self, challenge_id: str, now: datetime | None = None) -> Challenge:
        for challenge in self.active(now):
            if challenge.id == challenge_id:
                return challenge
        raise ChallengeNotFoundError(challenge_id)
