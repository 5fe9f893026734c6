from dailyquest.models.challenge import Challenge
from dailyquest.schemas.base import CamelModel


class ChallengeResponse(CamelModel):
    id: str
    verb: str
    target: str
    amount: int
    reward: int
    badge_index: int

    @classmethod
    def from_challenge(cls, challenge: Challenge) -> "ChallengeResponse":
        return cls(
            id=challenge.id,
            verb=challenge.verb,
            target=challenge.target,
            amount=challenge.amount,
            reward=challenge.reward,
            badge_index=challenge.badge_index,
        )
