from dailyquest.schemas.base import CamelModel


class HealthResponse(CamelModel):
    status: str
    last_challenge_reset: str | None = None
    session_count: int
    project_initialized: bool = False
