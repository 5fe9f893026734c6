from fastapi import Request

from dailyquest.services.identity_client import IdentityClient
from dailyquest.services.reward_client import RewardClient


def get_reward_client(request: Request) -> RewardClient:
    """Dependency for the reward-issuance client built at startup."""
    return request.app.state.reward_client


def get_identity_client(request: Request) -> IdentityClient | None:
    """Dependency for the identity client, or None when it is not configured."""
    return getattr(request.app.state, "identity_client", None)
