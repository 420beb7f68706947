"""Lead marketplace HTTP client: one JSON POST per submission, explicit timeouts, no retry."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from intake import settings

logger = logging.getLogger(__name__)


class MarketplaceUnavailable(Exception):
    """Transport-level failure: connection refused, DNS, timeout."""


@dataclass
class MarketplaceResponse:
    http_status: int
    body: dict[str, Any] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.http_status < 300


def post_lead(
    payload: dict[str, Any],
    *,
    url: str | None = None,
    session: requests.Session | None = None,
) -> MarketplaceResponse:
    http = session or requests
    start = time.perf_counter()
    try:
        resp = http.post(
            url or settings.LEAD_MARKETPLACE_URL,
            json=payload,
            headers={"Content-Type": "application/json", "User-Agent": settings.USER_AGENT},
            timeout=(settings.MARKETPLACE_CONNECT_TIMEOUT_SECONDS, settings.MARKETPLACE_TIMEOUT_SECONDS),
        )
    except requests.RequestException as e:
        raise MarketplaceUnavailable(f"{type(e).__name__}: {e}") from e
    elapsed = round((time.perf_counter() - start) * 1000, 2)
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    logger.info("Marketplace responded HTTP %s in %.0f ms (status=%s)", resp.status_code, elapsed, body.get("status"))
    return MarketplaceResponse(http_status=resp.status_code, body=body, elapsed_ms=elapsed)
