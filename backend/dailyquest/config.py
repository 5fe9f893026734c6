from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Daily challenges
    challenges_per_day: int = 3
    challenge_amount_min: int = 3
    challenge_amount_max: int = 7
    reward_units_min: int = 3  # reward = units * 10
    reward_units_max: int = 7

    # Wallet sign-in
    nonce_ttl_seconds: int = 300  # 5 minutes

    # Reward issuance service (required)
    reward_api_url: str | None = None
    reward_api_key: str | None = None
    payout_timeout_seconds: float = 10.0

    # Identity / achievement service (optional)
    identity_api_url: str | None = None
    identity_api_key: str | None = None
    identity_project_name: str = "DailyGame"
    identity_project_key: str | None = None
    xp_per_progress: int = 10
    access_token_ttl_seconds: int = 3600

    # Collaborator retries
    collaborator_max_attempts: int = 3
    collaborator_backoff_max_seconds: float = 4.0
    collaborator_timeout_seconds: float = 10.0

    # Rate Limiting
    rate_limit_auth: str = "10/minute"
    rate_limit_progress: str = "120/minute"
    rate_limit_claims: str = "10/minute"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"

    # Alerts
    discord_alerts_webhook_url: str | None = None

    # CORS
    cors_origins: list[str] | str = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("challenge_amount_min", "reward_units_min")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


settings = Settings()
