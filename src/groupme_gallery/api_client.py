"""GroupMe REST API client for the listing path, with backoff on rate limiting."""

import asyncio
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import aiohttp

from gallery_core.errors import (
    AuthError,
    GalleryError,
    GroupNotFoundError,
    ThrottlingError,
    TransportError,
)
from gallery_core.logging.context import get_log_context
from gallery_core.resilience import LISTING_RETRY, RetryConfig, with_retry_async

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.groupme.com/v3"
DEFAULT_PAGE_LIMIT = 100

# Human-readable label per status code
_STATUS_LABELS: dict[int, str] = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not found",
    429: "Rate limited",
    500: "Server error",
    502: "Server error",
    503: "Server error",
    504: "Server error",
}


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given either as seconds or as an HTTP date."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def classify_api_error(status: int, url: str, retry_after: float | None = None) -> GalleryError:
    """Map a non-success listing status to the exception the caller should see.

    Only 429 is retried. 401 aborts the run; everything else aborts the listing.
    """
    label = _STATUS_LABELS.get(status, "HTTP error")
    message = f"{label} ({status}): {url}"

    if status == 401:
        return AuthError(message, context={"status_code": status})
    if status == 429:
        return ThrottlingError(message, retry_after=retry_after, context={"status_code": status})
    return TransportError(message, status_code=status)


class GroupMeApiClient:
    """Async client for the three listing endpoints of the GroupMe API."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = 30,
        retry_config: RetryConfig | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else ""

        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"GroupMeApiClient base_url must start with http:// or https://, got: {self.base_url!r}"
            )

        if not token:
            raise AuthError("No API token available")

        self._token = token
        self.timeout_seconds = timeout_seconds
        self.retry_config = retry_config or LISTING_RETRY

        self._session = session
        self._owns_session = session is None
        self._closed = False

    @property
    def token(self) -> str:
        return self._token

    async def __aenter__(self) -> "GroupMeApiClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("GroupMeApiClient is closed, cannot create new session")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    @staticmethod
    def _get_context_ids() -> dict[str, str]:
        return {k: v for k, v in get_log_context().items() if v and k != "stage"}

    async def _request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET one endpoint. Returns the ``response`` payload, or None on 304."""
        session = await self._ensure_session()
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start_time = asyncio.get_running_loop().time()

        try:
            async with session.get(
                url,
                params=params,
                headers={"X-Access-Token": self._token},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                duration = asyncio.get_running_loop().time() - start_time

                if response.status == 304:
                    logger.debug(
                        "API returned 304, no more data",
                        extra={"api_endpoint": endpoint, "http_status": 304},
                    )
                    return None

                if not 200 <= response.status < 300:
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                    error = classify_api_error(response.status, url, retry_after)
                    logger.warning(
                        "API request failed",
                        extra={
                            **self._get_context_ids(),
                            "api_endpoint": endpoint,
                            "api_url": url,
                            "http_status": response.status,
                            "error_category": error.category.value,
                            "server_retry_after": retry_after,
                            "duration_seconds": round(duration, 3),
                        },
                    )
                    raise error

                body = await response.json(content_type=None)

            logger.debug(
                "API request succeeded",
                extra={
                    **self._get_context_ids(),
                    "api_endpoint": endpoint,
                    "http_status": response.status,
                    "duration_seconds": round(duration, 3),
                },
            )

        except TimeoutError as e:
            raise TransportError(f"Timeout after {self.timeout_seconds}s: {url}", cause=e) from e

        except aiohttp.ClientError as e:
            logger.warning(
                "API connection error",
                extra={"api_endpoint": endpoint, "api_url": url, "error_message": str(e)},
            )
            raise TransportError(f"Connection error: {e}", cause=e) from e

        except ValueError as e:
            raise TransportError(f"Malformed response from {url}", cause=e) from e

        if not isinstance(body, dict) or "response" not in body:
            raise TransportError(f"Unexpected response shape from {url}")
        return body["response"]

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET with exponential backoff on 429; every other error surfaces at once."""
        return await with_retry_async(config=self.retry_config)(self._request)(
            endpoint, params
        )

    async def get_group(self, group_id: str) -> dict[str, Any]:
        try:
            group = await self._get(f"groups/{group_id}")
        except TransportError as e:
            if e.status_code == 404:
                raise GroupNotFoundError(
                    f"Group {group_id} not found", status_code=404, cause=e
                ) from e
            raise
        return group or {}

    async def get_messages(
        self,
        group_id: str,
        before_id: str | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> list[dict[str, Any]]:
        """One page of messages, newest first. Empty when the history is exhausted (304)."""
        params: dict[str, Any] = {"limit": limit}
        if before_id is not None:
            params["before_id"] = before_id

        page = await self._get(f"groups/{group_id}/messages", params)
        if not page:
            return []
        return list(page.get("messages") or [])

    async def list_groups_page(self, page: int, per_page: int = DEFAULT_PAGE_LIMIT) -> list[dict[str, Any]]:
        groups = await self._get("groups", {"page": page, "per_page": per_page})
        return list(groups or [])


__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_PAGE_LIMIT",
    "GroupMeApiClient",
    "classify_api_error",
    "parse_retry_after",
]
