"""
Client for the external identity/achievement service.

The service keeps a project for the game and a profile per wallet. Read-style
calls retry with backoff and raise ExternalServiceError when exhausted. Stat
updates (XP, badges) are best effort: failures are logged and reported as
False, never raised, because nothing reward-gating depends on them.
"""

import httpx
import structlog

from dailyquest.config import settings
from dailyquest.exceptions import ExternalServiceError
from dailyquest.services.http_retry import describe_http_error, retrying

logger = structlog.get_logger()

SERVICE_NAME = "Identity service"


def _read_field(response: httpx.Response, field: str):
    """Pull ``field`` out of a JSON object body, or raise ExternalServiceError."""
    try:
        return response.json()[field]
    except (ValueError, KeyError, TypeError) as e:
        raise ExternalServiceError(
            SERVICE_NAME, f"unexpected response body: missing {field}"
        ) from e


class IdentityClient:
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        project_name: str | None = None,
        project_key: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.project_name = project_name or settings.identity_project_name
        self.project = project_key
        self.timeout = timeout or settings.collaborator_timeout_seconds
        self.max_attempts = max_attempts
        self._profile_cache: dict[str, str] = {}

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient() as client:
            return await client.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )

    async def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async for attempt in retrying(self.max_attempts):
                with attempt:
                    response = await self._request(method, path, **kwargs)
                    response.raise_for_status()
                    return response
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, describe_http_error(e))

    async def ensure_project(self) -> str:
        """
        Look up the configured project, creating it only on confirmed absence.

        A 409 from create means another instance got there first and counts
        as success; the existing project is then found by name.
        """
        if self.project:
            try:
                async for attempt in retrying(self.max_attempts):
                    with attempt:
                        response = await self._request("GET", f"/projects/{self.project}")
                        if response.status_code != 404:
                            response.raise_for_status()
            except httpx.HTTPError as e:
                raise ExternalServiceError(SERVICE_NAME, describe_http_error(e))

            if response.status_code == 200:
                logger.info("identity_project_found", project=self.project)
                return self.project
            logger.warning("identity_project_missing", project=self.project)

        try:
            response = await self._request(
                "POST", "/projects", json={"name": self.project_name}
            )
            if response.status_code != 409:
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, describe_http_error(e))

        created = response.status_code != 409
        if created:
            self.project = _read_field(response, "project")
        else:
            # The conflict body says nothing reliable about the existing project
            self.project = await self._find_project_by_name()

        logger.info("identity_project_ready", project=self.project, created=created)
        return self.project

    async def _find_project_by_name(self) -> str:
        response = await self._request_with_retry(
            "GET", "/projects", params={"name": self.project_name}
        )
        projects = _read_field(response, "projects")
        if not projects:
            raise ExternalServiceError(
                SERVICE_NAME, f"project {self.project_name!r} reported as existing but not found"
            )
        try:
            return projects[0]["project"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(SERVICE_NAME, f"malformed project listing: {e!r}")

    async def create_access_token(self, wallet: str) -> str:
        response = await self._request_with_retry(
            "POST",
            "/access-tokens",
            json={"wallet": wallet, "project": self.project},
        )
        return response.json()["accessToken"]

    async def find_profile(self, wallet: str) -> str | None:
        """Profile address for ``wallet`` in our project, cached once found."""
        cached = self._profile_cache.get(wallet)
        if cached:
            return cached

        response = await self._request_with_retry(
            "GET",
            "/profiles",
            params={"wallet": wallet, "project": self.project},
        )
        profiles = response.json().get("profiles") or []
        if not profiles:
            return None

        address = profiles[0]["address"]
        self._profile_cache[wallet] = address
        return address

    async def _update_profile(self, wallet: str, path: str, payload: dict, event: str) -> bool:
        try:
            profile = await self.find_profile(wallet)
            if profile is None:
                logger.info(f"{event}_skipped", wallet=wallet, reason="no_profile")
                return False
            response = await self._request("POST", f"/profiles/{profile}/{path}", json=payload)
            response.raise_for_status()
        except (ExternalServiceError, httpx.HTTPError) as e:
            logger.warning(f"{event}_failed", wallet=wallet, error=str(e))
            return False

        logger.info(f"{event}_sent", wallet=wallet, **payload)
        return True

    async def add_xp(self, wallet: str, amount: int) -> bool:
        return await self._update_profile(wallet, "xp", {"amount": amount}, "identity_xp")

    async def add_achievement(self, wallet: str, badge_index: int) -> bool:
        return await self._update_profile(
            wallet, "achievements", {"achievement": badge_index}, "identity_achievement"
        )
