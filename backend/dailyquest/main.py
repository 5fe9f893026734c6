from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from dailyquest.config import settings
from dailyquest.dependencies import get_identity_client
from dailyquest.exceptions import DailyQuestError, ExternalServiceError
from dailyquest.logging_config import get_logger, setup_logging
from dailyquest.middleware.logging import CORRELATION_HEADER, LoggingMiddleware
from dailyquest.middleware.rate_limit import limiter
from dailyquest.routers import auth, challenges, progress
from dailyquest.schemas.health import HealthResponse
from dailyquest.services.alert_service import send_error_alert
from dailyquest.services.identity_client import IdentityClient
from dailyquest.services.reward_client import RewardClient
from dailyquest.state import GameState, game_state, get_state

logger = get_logger("dailyquest")


def build_reward_client() -> RewardClient:
    """The reward service is required; refuse to start without it."""
    if not settings.reward_api_url:
        raise RuntimeError("REWARD_API_URL is not configured. The claim flow cannot pay out.")
    return RewardClient(settings.reward_api_url, api_key=settings.reward_api_key)


async def build_identity_client() -> IdentityClient | None:
    """
    Connect to the identity service if configured and make sure our project exists.

    An unreachable identity service at boot is fatal; an unconfigured one just
    disables XP, badges and access tokens.
    """
    if not settings.identity_api_url:
        logger.warning("identity_service_not_configured")
        return None

    client = IdentityClient(
        settings.identity_api_url,
        api_key=settings.identity_api_key,
        project_key=settings.identity_project_key,
    )
    try:
        await client.ensure_project()
    except ExternalServiceError as e:
        raise RuntimeError(f"Identity project initialization failed: {e.message}") from e
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborator clients and open the first day."""
    setup_logging()
    app.state.reward_client = build_reward_client()
    app.state.identity_client = await build_identity_client()
    game_state.tick()
    logger.info(
        "server_ready",
        identity_enabled=app.state.identity_client is not None,
        last_challenge_reset=str(game_state.catalog.last_reset),
    )
    yield
    logger.info("server_stopped")


app = FastAPI(
    title="DailyQuest",
    description="Wallet sign-in, daily challenge progress and reward claims for the game",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter


def _correlation_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    headers = dict(headers or {})
    correlation_id = _correlation_id()
    if correlation_id:
        headers[CORRELATION_HEADER] = correlation_id
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(DailyQuestError)
async def domain_error_handler(request: Request, exc: DailyQuestError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", path=request.url.path, error=exc.message)
        await send_error_alert(
            error_type=type(exc).__name__,
            message=exc.message,
            path=request.url.path,
            correlation_id=_correlation_id(),
            status_code=exc.status_code,
        )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing fields are a 400 with the first problem spelled out."""
    errors = exc.errors()
    if not errors:
        return _error_response(400, "Invalid request")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid value").removeprefix("Value error, ")
    return _error_response(400, f"{field}: {message}" if field else message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    await send_error_alert(
        error_type="Rate Limit Exceeded",
        message=f"Rate limit exceeded: {exc.detail}",
        path=request.url.path,
        correlation_id=_correlation_id(),
        status_code=429,
    )
    return _error_response(429, f"Rate limit exceeded: {exc.detail}", {"Retry-After": "60"})


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(Exception)
async def add_correlation_id_to_errors(request: Request, exc: Exception) -> JSONResponse:
    """
    Convert HTTP errors and unexpected exceptions into JSON error responses.

    Anything that is not an HTTPException becomes a generic 500. All 5xx
    responses are alerted.
    """
    if isinstance(exc, StarletteHTTPException):
        status_code = exc.status_code
        message = str(exc.detail)
    else:
        status_code = 500
        message = "Internal Server Error"
        logger.error("unhandled_exception", path=request.url.path, exc_info=exc)

    if status_code >= 500:
        await send_error_alert(
            error_type=type(exc).__name__,
            message=str(exc.detail) if isinstance(exc, StarletteHTTPException) else repr(exc),
            path=request.url.path,
            correlation_id=_correlation_id(),
            status_code=status_code,
        )

    return _error_response(status_code, message)


app.add_middleware(LoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(challenges.router, tags=["challenges"])
app.include_router(auth.router, tags=["auth"])
app.include_router(progress.router, tags=["progress"])


@app.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    state: GameState = Depends(get_state),
    identity: IdentityClient | None = Depends(get_identity_client),
):
    return HealthResponse(
        **state.health(),
        project_initialized=identity is not None and identity.project is not None,
    )
