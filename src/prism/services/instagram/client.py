"""Instagram Graph API client with rate limiting."""

import logging
from typing import Any, Optional

import httpx
from ratelimit import limits, sleep_and_retry
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from prism.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Graph API error code for invalid or expired OAuth tokens
OAUTH_ERROR_CODE = 190
# Application, user and page level throttling codes
RATE_LIMIT_ERROR_CODES = (4, 17, 32, 613)


class InstagramClientError(Exception):
    """Base exception for Instagram client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(InstagramClientError):
    """Rate limit exceeded error."""

    pass


class AuthenticationError(InstagramClientError):
    """Authentication error."""

    pass


def graph_error_code(response: Any) -> Optional[int]:
    """Graph API error code from a decoded error body, if any."""
    error = response.get("error") if isinstance(response, dict) else None
    return error.get("code") if isinstance(error, dict) else None


def is_retryable(exc: BaseException) -> bool:
    """Whether a failed request is worth retrying after a short backoff.

    Timeouts are not retried: a stalled upstream stalls again. Graph
    throttling codes are not retried either, their windows outlast the backoff.
    """
    if isinstance(exc, httpx.TimeoutException):
        return False
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, RateLimitError):
        return exc.status_code == 429 and graph_error_code(exc.response) not in RATE_LIMIT_ERROR_CODES
    return False


class InstagramClient:
    """Client for the Instagram Graph API with rate limiting."""

    # Business Use Case ceiling for a single account
    CALLS_PER_HOUR = 4800
    PERIOD = 3600  # 1 hour in seconds

    MEDIA_FIELDS = (
        "id,caption,media_type,media_product_type,media_url,permalink,"
        "thumbnail_url,timestamp,like_count,comments_count"
    )
    PROFILE_FIELDS = (
        "id,username,name,biography,followers_count,follows_count,"
        "media_count,profile_picture_url,website"
    )
    STORY_FIELDS = "id,media_type,media_url,permalink,timestamp"
    PAGE_SIZE = 100

    def __init__(
        self,
        access_token: str,
        instagram_user_id: str,
        settings: Optional[Settings] = None,
    ):
        self.access_token = access_token
        self.instagram_user_id = instagram_user_id
        self.settings = settings or get_settings()
        self.base_url = self.settings.graph_base_url
        self._client = httpx.Client(timeout=self.settings.request_timeout)

    def __enter__(self) -> "InstagramClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    @sleep_and_retry
    @limits(calls=CALLS_PER_HOUR, period=PERIOD)
    @retry(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make a rate-limited API request."""
        params = dict(params or {})
        params["access_token"] = self.access_token

        response = self._client.request(method, url, params=params)
        data = self._decode(response)

        error = data.get("error") if isinstance(data, dict) else None
        error = error if isinstance(error, dict) else {}

        if response.status_code == 429 or error.get("code") in RATE_LIMIT_ERROR_CODES:
            raise RateLimitError(
                "Rate limit exceeded",
                status_code=response.status_code,
                response=data,
            )

        if response.status_code in (401, 403) or error.get("code") == OAUTH_ERROR_CODE:
            raise AuthenticationError(
                f"Invalid or expired access token: {error.get('message', 'unauthorized')}",
                status_code=response.status_code,
                response=data,
            )

        if response.status_code >= 400:
            error_message = error.get("message", "Unknown error")
            raise InstagramClientError(
                f"API error {response.status_code}: {error_message}",
                status_code=response.status_code,
                response=data,
            )

        if not isinstance(data, dict):
            raise InstagramClientError(
                "Unexpected response body",
                status_code=response.status_code,
                response=data,
            )
        return data

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            if response.status_code >= 400:
                return {"error": {"message": response.text[:200]}}
            raise InstagramClientError(
                f"Malformed JSON response: {e}",
                status_code=response.status_code,
            ) from e

    def get_profile(self) -> dict[str, Any]:
        """Get the business account profile."""
        url = f"{self.base_url}/{self.instagram_user_id}"
        return self._make_request("GET", url, params={"fields": self.PROFILE_FIELDS})

    def get_media(self, max_items: int = 500) -> list[dict[str, Any]]:
        """Get recent media, following pagination until ``max_items`` are loaded."""
        url = f"{self.base_url}/{self.instagram_user_id}/media"
        response = self._make_request(
            "GET",
            url,
            params={"fields": self.MEDIA_FIELDS, "limit": self.PAGE_SIZE},
        )
        media = list(response.get("data") or [])
        next_url = (response.get("paging") or {}).get("next")

        while next_url and len(media) < max_items:
            page = self._make_request("GET", next_url)
            page_data = page.get("data") or []
            if not page_data:
                break
            media.extend(page_data)
            next_url = (page.get("paging") or {}).get("next")

        logger.debug(f"Loaded {len(media)} media records for {self.instagram_user_id}")
        return media[:max_items]

    def get_stories(self, limit: int = 25) -> list[dict[str, Any]]:
        """Get currently active stories."""
        url = f"{self.base_url}/{self.instagram_user_id}/stories"
        response = self._make_request(
            "GET",
            url,
            params={"fields": self.STORY_FIELDS, "limit": limit},
        )
        return list(response.get("data") or [])

    def get_media_insights(self, media_id: str, metric: str) -> dict[str, Any]:
        """Get insights for a media item or story.

        Args:
            media_id: Media or story ID
            metric: Comma-separated metric names

        Returns:
            Raw insights response
        """
        url = f"{self.base_url}/{media_id}/insights"
        return self._make_request("GET", url, params={"metric": metric})

    def get_account_insights(
        self,
        metric: str,
        period: str = "lifetime",
        **params: str,
    ) -> dict[str, Any]:
        """Get account-level insights (demographics, online followers)."""
        url = f"{self.base_url}/{self.instagram_user_id}/insights"
        query = {"metric": metric, "period": period, **params}
        return self._make_request("GET", url, params=query)
