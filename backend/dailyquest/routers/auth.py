import structlog
from fastapi import APIRouter, Depends, Query, Request

from dailyquest.config import settings
from dailyquest.dependencies import get_identity_client
from dailyquest.exceptions import NotFoundError, SessionNotFoundError
from dailyquest.middleware.rate_limit import limiter
from dailyquest.schemas.auth import (
    AccessTokenRequest,
    AccessTokenResponse,
    CheckSessionResponse,
    ConfirmRequest,
    ConfirmResponse,
    NonceResponse,
)
from dailyquest.services.identity_client import IdentityClient
from dailyquest.state import GameState, get_state

router = APIRouter()
logger = structlog.get_logger()


@router.get("/auth/challenge", response_model=NonceResponse)
@limiter.limit(settings.rate_limit_auth)
async def request_sign_in(
    request: Request,
    wallet: str = Query(..., min_length=1),
    state: GameState = Depends(get_state),
):
    """
    Issue a sign-in message for the wallet to sign.

    The message embeds a single-use nonce that expires after a few minutes.
    """
    return NonceResponse(message=state.issue_nonce(wallet))


@router.post("/auth/confirm", response_model=ConfirmResponse)
@limiter.limit(settings.rate_limit_auth)
async def confirm_sign_in(
    request: Request,
    confirm_data: ConfirmRequest,
    state: GameState = Depends(get_state),
):
    """
    Verify the signed sign-in message and mint a session token.

    The token is what the game runtime polls ``/check-session`` with.
    """
    token = state.confirm(confirm_data.wallet, confirm_data.signature)
    return ConfirmResponse(session_token=token)


@router.post("/auth/access-token", response_model=AccessTokenResponse)
@limiter.limit(settings.rate_limit_auth)
async def create_access_token(
    request: Request,
    token_data: AccessTokenRequest,
    state: GameState = Depends(get_state),
    identity: IdentityClient | None = Depends(get_identity_client),
):
    """
    Mint an identity-service access token for the session's wallet.

    The token is attached to the session so the game runtime receives it from
    ``/check-session``.
    """
    if identity is None:
        raise NotFoundError("Identity service not configured")

    session = state.check_session(token_data.session_token)
    access_token = await identity.create_access_token(session.wallet_address)
    state.attach_external_token(session.token, access_token)

    return AccessTokenResponse(
        access_token=access_token,
        expires_in=settings.access_token_ttl_seconds,
    )


@router.get(
    "/check-session",
    response_model=CheckSessionResponse,
    response_model_exclude_none=True,
)
async def check_session(
    token: str = Query(""),
    state: GameState = Depends(get_state),
):
    """Tell a polling client which wallet its token is bound to."""
    try:
        session = state.check_session(token)
    except SessionNotFoundError:
        return CheckSessionResponse(error="Not linked")

    return CheckSessionResponse(
        wallet_address=session.wallet_address,
        verified_at=session.verified_at,
        access_token=session.external_access_token,
    )
