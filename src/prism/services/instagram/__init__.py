"""Instagram services."""

from prism.services.instagram.client import (
    AuthenticationError,
    InstagramClient,
    InstagramClientError,
    RateLimitError,
)
from prism.services.instagram.insights import InsightsFetcher

__all__ = [
    "AuthenticationError",
    "InsightsFetcher",
    "InstagramClient",
    "InstagramClientError",
    "RateLimitError",
]
