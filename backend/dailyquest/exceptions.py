"""
Domain exceptions.

Services raise these; the app-level handler in main.py turns them into
``{"error": ...}`` JSON responses using ``status_code``.
"""


class DailyQuestError(Exception):
    """Base class for expected, client-facing failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DailyQuestError):
    status_code = 400


class AuthError(DailyQuestError):
    status_code = 401


class NotFoundError(DailyQuestError):
    status_code = 404


class SessionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Session not found"):
        super().__init__(message)


class ChallengeNotFoundError(NotFoundError):
    # Reported as a bad request: the client sent an id outside today's set.
    status_code = 400

    def __init__(self, challenge_id: str):
        super().__init__("Challenge not found")
        self.challenge_id = challenge_id


class NoRewardsAvailableError(DailyQuestError):
    """Nothing completed-unclaimed for the wallet. A no-op, not a fault."""

    status_code = 400

    def __init__(self, message: str = "No rewards to claim"):
        super().__init__(message)


class ExternalServiceError(DailyQuestError):
    """A collaborator call failed after retries."""

    status_code = 502

    def __init__(self, service: str, message: str):
        super().__init__(f"{service} unavailable: {message}")
        self.service = service
