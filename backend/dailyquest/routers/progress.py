import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from dailyquest.config import settings
from dailyquest.dependencies import get_identity_client, get_reward_client
from dailyquest.middleware.rate_limit import limiter
from dailyquest.schemas.challenge import ChallengeResponse
from dailyquest.schemas.progress import (
    ClaimResponse,
    ConnectResponse,
    ProgressRequest,
    ProgressResponse,
    ProgressState,
    WalletRequest,
)
from dailyquest.services.identity_client import IdentityClient
from dailyquest.services.reward_client import RewardClient
from dailyquest.state import GameState, get_state

router = APIRouter()
logger = structlog.get_logger()


@router.post("/connect", response_model=ConnectResponse)
async def connect_wallet(
    wallet_data: WalletRequest,
    state: GameState = Depends(get_state),
):
    """Today's challenges together with the wallet's progress on them."""
    wallet = wallet_data.wallet_address
    challenges = state.challenges()
    progress = state.progress_for(wallet)

    return ConnectResponse(
        wallet=wallet,
        challenges=[ChallengeResponse.from_challenge(c) for c in challenges],
        progress={cid: ProgressState.from_record(r) for cid, r in progress.items()},
    )


@router.post("/progress", response_model=ProgressResponse)
@limiter.limit(settings.rate_limit_progress)
async def report_progress(
    request: Request,
    progress_data: ProgressRequest,
    background_tasks: BackgroundTasks,
    state: GameState = Depends(get_state),
    identity: IdentityClient | None = Depends(get_identity_client),
):
    """
    Add progress to one of today's challenges.

    Progress is clamped to the challenge amount. Identified either by a session
    token or by wallet address.
    """
    wallet, record = state.report_progress(
        progress_data.challenge_id,
        progress_data.progress,
        wallet=progress_data.wallet_address,
        session_token=progress_data.session_token,
    )

    # XP is a cosmetic stat; it never gates a reward
    if identity is not None and progress_data.progress > 0:
        background_tasks.add_task(
            identity.add_xp, wallet, progress_data.progress * settings.xp_per_progress
        )

    logger.info(
        "progress_reported",
        wallet=wallet,
        challenge_id=record.challenge_id,
        completed=record.completed,
        amount=record.amount,
    )
    return ProgressResponse(progress=ProgressState.from_record(record))


@router.post("/claim", response_model=ClaimResponse)
@limiter.limit(settings.rate_limit_claims)
async def claim_rewards(
    request: Request,
    claim_data: WalletRequest,
    background_tasks: BackgroundTasks,
    state: GameState = Depends(get_state),
    rewards: RewardClient = Depends(get_reward_client),
    identity: IdentityClient | None = Depends(get_identity_client),
):
    """
    Pay out every completed, unclaimed challenge for the wallet.

    A second claim with no new completions is answered with
    "No rewards to claim".
    """
    wallet = claim_data.wallet_address
    result = await state.claim(wallet, rewards.issue)

    if identity is not None:
        for badge_index in result.badge_indexes:
            background_tasks.add_task(identity.add_achievement, wallet, badge_index)

    return ClaimResponse(success=True, reward=result.reward)
