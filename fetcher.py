"""
fetcher.py

Purpose:
  Single-shot HTTP GET for cost-of-living pages. Every call picks a fresh
  browser identity from the User-Agent pool, sends a browser-like header set,
  and reports the outcome as one of four result variants instead of raising:

    Success          2xx, body available in `html`
    RateLimited      429 / 403, the caller may retry later
    PermanentFailure any other non-2xx status (404, 500, ...)
    NetworkError     no HTTP response at all (DNS, reset, timeout)

  The `Retry-After` header is parsed for every response, whether it carries
  delta-seconds or an HTTP date.

Imported by: retry.py, inflation.py, update_data.py

Imports:
  Local modules: config
  Standard library: dataclasses, datetime, email.utils, logging, math, random, typing
  Third-party: requests
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Optional

import requests

import config

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Result variants
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FetchResult:
    """Common shape of every fetch outcome."""

    status: int
    html: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.html is not None

    @property
    def rate_limited(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(FetchResult):
    pass


@dataclass(frozen=True)
class RateLimited(FetchResult):
    @property
    def rate_limited(self) -> bool:
        return True


@dataclass(frozen=True)
class PermanentFailure(FetchResult):
    pass


@dataclass(frozen=True)
class NetworkError(FetchResult):
    status: int = 0
    reason: str = ""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def random_user_agent(rng: Optional[random.Random] = None) -> str:
    """Pick a User-Agent uniformly at random from the pool."""
    return (rng or random).choice(config.USER_AGENTS)


def build_headers(rng: Optional[random.Random] = None) -> Dict[str, str]:
    headers = dict(config.BROWSER_HEADERS)
    headers["User-Agent"] = random_user_agent(rng)
    return headers


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    Convert a Retry-After header into whole seconds.

    Args:
        value: Raw header value, either delta-seconds ("120") or an HTTP date
            ("Wed, 21 Oct 2015 07:28:00 GMT").
        now: Reference time for HTTP dates; defaults to the current UTC time.

    Returns:
        Seconds to wait (never negative), or None when the header is absent
        or unparseable.
    """
    if not value:
        return None
    text = value.strip()
    if text.isascii() and text.isdigit():
        return int(text)

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        logger.debug("Unparseable Retry-After header: %r", value)
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max(0, math.ceil((when - now).total_seconds()))


def classify(status: int, html: Optional[str], retry_after: Optional[int]) -> FetchResult:
    """Map an HTTP status onto the matching result variant."""
    if 200 <= status < 300:
        return Success(status=status, html=html or "", retry_after=retry_after)
    if status in config.RATE_LIMIT_STATUSES:
        return RateLimited(status=status, retry_after=retry_after)
    return PermanentFailure(status=status, retry_after=retry_after)


# -----------------------------------------------------------------------------
# Fetch
# -----------------------------------------------------------------------------
def fetch_page(url: str,
               timeout: float = config.REQUEST_TIMEOUT_S,
               session: Optional[requests.Session] = None,
               rng: Optional[random.Random] = None) -> FetchResult:
    """
    Perform one GET request and describe the outcome without raising.

    Args:
        url: Page to fetch.
        timeout: Seconds before the request is abandoned.
        session: Optional requests session (or any object with a compatible
            `get`). Module-level `requests.get` is used when omitted so no
            cookies carry over between calls.
        rng: Optional random source for User-Agent selection.

    Returns:
        A `FetchResult` variant. `html` is set only on `Success`.

    Raises:
        None. Transport errors become `NetworkError`.
    """
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, headers=build_headers(rng), timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        logger.debug("Network error for %s: %r", url, exc)
        return NetworkError(reason=str(exc))

    headers = {k.lower(): v for k, v in resp.headers.items()}
    retry_after = parse_retry_after(headers.get("retry-after"))
    html = resp.text if 200 <= resp.status_code < 300 else None
    logger.debug("GET %s -> %s (retry-after=%s)", url, resp.status_code, retry_after)
    return classify(resp.status_code, html, retry_after)


def fetch_json(url: str,
               timeout: float = config.REQUEST_TIMEOUT_S,
               session: Optional[requests.Session] = None):
    """
    GET a JSON document. Unlike `fetch_page` this raises on failure, so
    callers decide how much to swallow.

    Raises:
        requests.RequestException: Transport or HTTP (non-2xx) errors.
        ValueError: Body is not valid JSON.
    """
    getter = session.get if session is not None else requests.get
    resp = getter(url, headers={"Accept": "application/json"}, timeout=timeout)
    resp.raise_for_status()
    return resp.json()
