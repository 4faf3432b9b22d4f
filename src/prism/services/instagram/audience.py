"""Audience insights: follower demographics and online followers."""

import logging
from typing import Any

import httpx

from prism.services.instagram.client import AuthenticationError, InstagramClient, InstagramClientError

logger = logging.getLogger(__name__)

BREAKDOWNS = ("age", "gender", "country", "city")

# follower_demographics needs 100+ followers; engaged audience is the fallback
DEMOGRAPHIC_METRICS = ("follower_demographics", "engaged_audience_demographics")


def parse_breakdown(payload: Any) -> dict[str, float | int]:
    """Flatten a ``total_value.breakdowns`` response into ``{dimension: value}``.

    Multi-dimension keys are joined with ``.``; zero values are dropped.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return {}

    breakdowns = (data[0].get("total_value") or {}).get("breakdowns") or []
    values: dict[str, float | int] = {}
    for breakdown in breakdowns:
        for result in breakdown.get("results") or []:
            dimensions = result.get("dimension_values") or []
            key = ".".join(str(d) for d in dimensions)
            value = result.get("value")
            if key and value:
                values[key] = value
    return values


def parse_online_followers(payload: Any) -> dict[str, float | int]:
    """Extract the hour -> follower count map from an ``online_followers`` response."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return {}
    values = data[0].get("values") or []
    if not values or not isinstance(values[0], dict):
        return {}
    value = values[0].get("value")
    return dict(value) if isinstance(value, dict) else {}


def fetch_demographics(client: InstagramClient) -> dict[str, dict[str, float | int]]:
    """Fetch audience breakdowns keyed ``audience_<breakdown>``.

    Tries each demographic metric in turn and stops at the first one that
    yields any breakdown. Unsupported breakdowns are skipped; authentication
    errors propagate.
    """
    for metric in DEMOGRAPHIC_METRICS:
        demographics: dict[str, dict[str, float | int]] = {}
        for breakdown in BREAKDOWNS:
            try:
                payload = client.get_account_insights(
                    metric,
                    period="lifetime",
                    metric_type="total_value",
                    breakdown=breakdown,
                )
            except AuthenticationError:
                raise
            except (InstagramClientError, httpx.HTTPError) as e:
                logger.info(f"Demographics {metric}/{breakdown} unavailable: {e}")
                continue

            values = parse_breakdown(payload)
            if values:
                demographics[f"audience_{breakdown}"] = values

        if demographics:
            return demographics
    return {}


def fetch_online_followers(client: InstagramClient) -> dict[str, float | int]:
    try:
        payload = client.get_account_insights("online_followers", period="lifetime")
    except AuthenticationError:
        raise
    except (InstagramClientError, httpx.HTTPError) as e:
        logger.info(f"Online followers unavailable: {e}")
        return {}
    return parse_online_followers(payload)
