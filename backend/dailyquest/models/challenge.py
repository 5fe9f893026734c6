from dataclasses import dataclass


@dataclass(frozen=True)
class Challenge:
    """A daily objective. Immutable until the next rotation."""

    id: str
    verb: str
    target: str
    amount: int
    reward: int
    badge_index: int
