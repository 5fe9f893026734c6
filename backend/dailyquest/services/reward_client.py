"""Client for the external reward-issuance service."""

import httpx
import structlog

from dailyquest.config import settings
from dailyquest.exceptions import ExternalServiceError
from dailyquest.services.http_retry import describe_http_error, retrying

logger = structlog.get_logger()

SERVICE_NAME = "Reward service"
IDEMPOTENCY_HEADER = "Idempotency-Key"


class RewardClient:
    """
    Issues point rewards to a wallet.

    ``issue`` is a write that the claim flow treats as must-succeed: any
    failure left after retries is raised as ExternalServiceError so the caller
    can roll its pending state back.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.collaborator_timeout_seconds
        self.max_attempts = max_attempts

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def issue(self, wallet: str, amount: int, idempotency_key: str) -> None:
        """
        POST one payout. Every attempt carries the same ``Idempotency-Key``
        so a retried request whose first response was lost is not paid twice.
        """
        headers = {**self._headers(), IDEMPOTENCY_HEADER: idempotency_key}
        try:
            async for attempt in retrying(self.max_attempts):
                with attempt:
                    async with httpx.AsyncClient() as client:
                        response = await client.post(
                            f"{self.base_url}/rewards",
                            json={"wallet": wallet, "amount": amount},
                            headers=headers,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "reward_issue_failed",
                wallet=wallet,
                amount=amount,
                error=describe_http_error(e),
            )
            raise ExternalServiceError(SERVICE_NAME, describe_http_error(e))

        logger.info("reward_issued", wallet=wallet, amount=amount)
