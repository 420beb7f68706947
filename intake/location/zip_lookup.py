"""
Location enrichment: US postal code -> city/state via a zippopotam.us-style
lookup. Best effort; a failed lookup logs and returns None.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

import requests

from intake import settings

logger = logging.getLogger(__name__)

_cache: dict[str, "Location"] = {}


@dataclass(frozen=True)
class Location:
    city: str
    state: str


def lookup_zip(zip_code: str, *, session: requests.Session | None = None) -> Location | None:
    zip5 = str(zip_code or "").strip()[:5]
    if len(zip5) != 5 or not zip5.isdigit():
        return None
    if zip5 in _cache:
        return _cache[zip5]
    http = session or requests
    try:
        resp = http.get(
            f"{settings.ZIP_LOOKUP_URL.rstrip('/')}/{zip5}",
            timeout=settings.ZIP_LOOKUP_TIMEOUT_SECONDS,
            headers={"User-Agent": settings.USER_AGENT},
        )
    except requests.RequestException as e:
        logger.warning("ZIP lookup failed for %s: %s", zip5, e)
        return None
    if resp.status_code != 200:
        logger.info("ZIP lookup for %s returned HTTP %s", zip5, resp.status_code)
        return None
    try:
        place = resp.json()["places"][0]
        location = Location(city=place["place name"], state=place["state abbreviation"])
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning("Unexpected ZIP lookup response for %s: %s", zip5, e)
        return None
    _cache[zip5] = location
    return location


def clear_cache() -> None:
    _cache.clear()


def enrich_location(
    values: dict[str, Any],
    *,
    lookup: Callable[[str], Location | None] | None = None,
) -> dict[str, Any]:
    """Copy of ``values`` with city/state filled from zip_code where missing."""
    zip_code = values.get("zip_code")
    if not zip_code or (values.get("city") and values.get("state")):
        return dict(values)
    location = (lookup or lookup_zip)(str(zip_code))
    if location is None:
        return dict(values)
    enriched = dict(values)
    if not enriched.get("city"):
        enriched["city"] = location.city
    if not enriched.get("state"):
        enriched["state"] = location.state
    return enriched
