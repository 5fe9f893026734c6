import enum
from dataclasses import dataclass


class ProgressStatus(str, enum.Enum):
    PARTIAL = "partial"
    COMPLETED_UNCLAIMED = "completed_unclaimed"
    CLAIM_PENDING = "claim_pending"
    CLAIMED = "claimed"


@dataclass
class ProgressRecord:
    """
    Progress of one wallet against one challenge.

    Mutated only by ProgressLedger while holding the wallet's lock.
    """

    wallet: str
    challenge_id: str
    amount: int
    reward: int
    badge_index: int
    completed: int = 0
    claimed: bool = False
    pending: bool = False
    # Idempotency key of the payout batch this record was last sent in
    claim_id: str | None = None

    @property
    def status(self) -> ProgressStatus:
        if self.claimed:
            return ProgressStatus.CLAIMED
        if self.pending:
            return ProgressStatus.CLAIM_PENDING
        if self.completed >= self.amount:
            return ProgressStatus.COMPLETED_UNCLAIMED
        return ProgressStatus.PARTIAL

    @property
    def claimable(self) -> bool:
        return self.status is ProgressStatus.COMPLETED_UNCLAIMED
