"""
retry.py

Purpose:
  Bounded retry around `fetcher.fetch_page`. Only rate-limited responses are
  retried; everything else is returned at once. Wait durations come from the
  server's Retry-After hint when present, otherwise from exponential backoff
  with +/-20% jitter, and are always capped at `config.MAX_BACKOFF_S`.

  The wait policy (`compute_wait`) is a pure function and the sleep is
  injected, so the loop can be exercised without real delays.

Imported by: update_data.py

Imports:
  Local modules: config, fetcher
  Standard library: dataclasses, logging, random, time, typing
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

import config
from fetcher import FetchResult, NetworkError, fetch_page

logger = logging.getLogger(__name__)

Fetch = Callable[[str], FetchResult]
Sleep = Callable[[float], None]


@dataclass(frozen=True)
class RetryOutcome:
    """What the retry loop ended with.

    `gave_up` is True only when the last allowed attempt was still rate limited.
    """

    html: Optional[str]
    gave_up: bool
    attempts: int
    last: Optional[FetchResult] = None

    @property
    def ok(self) -> bool:
        return self.html is not None


def format_duration(seconds: float) -> str:
    """Human-readable duration: 850ms, 42s, 2m 5s."""
    ms = seconds * 1000
    if ms < 1000:
        return f"{round(ms)}ms"
    if ms < 60000:
        return f"{round(ms / 1000)}s"
    minutes, rest = divmod(ms, 60000)
    return f"{int(minutes)}m {round(rest / 1000)}s"


def backoff_base(attempt: int,
                 initial: float = config.INITIAL_BACKOFF_S,
                 ceiling: float = config.MAX_BACKOFF_S) -> float:
    """Un-jittered backoff for a zero-based attempt: 30, 60, 120, ... capped."""
    return min(initial * (2 ** attempt), ceiling)


def compute_wait(result: FetchResult,
                 attempt: int,
                 rng: Optional[random.Random] = None,
                 initial: float = config.INITIAL_BACKOFF_S,
                 ceiling: float = config.MAX_BACKOFF_S,
                 jitter: float = config.JITTER) -> float:
    """
    Seconds to wait before retrying a rate-limited response.

    Args:
        result: The rate-limited fetch result.
        attempt: Zero-based index of the attempt that just failed.
        rng: Random source for jitter.
        initial: Backoff seed for attempt 0.
        ceiling: Hard cap applied to both server hints and backoff.
        jitter: Fractional spread applied to backoff (0.2 -> x0.8..x1.2).

    Returns:
        The wait in seconds, never above `ceiling`.
    """
    if result.retry_after:
        return float(min(result.retry_after, ceiling))

    wait = backoff_base(attempt, initial, ceiling)
    wait *= (1 - jitter) + (rng or random).random() * (2 * jitter)
    return min(wait, ceiling)


def fetch_with_retry(url: str,
                     label: str = "",
                     fetch: Fetch = fetch_page,
                     sleep: Sleep = time.sleep,
                     max_retries: int = config.MAX_RETRIES,
                     rng: Optional[random.Random] = None) -> RetryOutcome:
    """
    Fetch `url`, retrying up to `max_retries` times on rate limiting.

    Args:
        url: Page to fetch.
        label: Name used in log lines (usually the city name).
        fetch: Single-attempt fetch function.
        sleep: Called with the wait in seconds between attempts.
        max_retries: Retries allowed beyond the first attempt.
        rng: Random source for backoff jitter.

    Returns:
        A `RetryOutcome`. Non-rate-limited failures return after one attempt
        with `gave_up=False`.
    """
    result: Optional[FetchResult] = None
    for attempt in range(max_retries + 1):
        result = fetch(url)

        if result.ok:
            return RetryOutcome(html=result.html, gave_up=False, attempts=attempt + 1, last=result)

        if not result.rate_limited:
            if isinstance(result, NetworkError):
                logger.info("NETWORK ERROR")
            else:
                logger.info("HTTP %s", result.status)
            return RetryOutcome(html=None, gave_up=False, attempts=attempt + 1, last=result)

        if attempt == max_retries:
            info = [f"HTTP {result.status}"]
            if result.retry_after:
                info.append(f"Retry-After: {format_duration(result.retry_after)}")
            logger.info("RATE LIMITED (%s) - gave up after %d retries", ", ".join(info), max_retries)
            return RetryOutcome(html=None, gave_up=True, attempts=attempt + 1, last=result)

        wait = compute_wait(result, attempt, rng)
        if result.retry_after:
            capped = " (capped to %s)" % format_duration(wait) if result.retry_after > wait else ""
            logger.info("%s - Retry-After: %s%s", result.status,
                        format_duration(result.retry_after), capped)
        else:
            logger.info("%s - no Retry-After header, backoff %s", result.status, format_duration(wait))

        logger.info("  [%s] Retry %d/%d in %s...", label or url, attempt + 1, max_retries,
                    format_duration(wait))
        sleep(wait)

    return RetryOutcome(html=None, gave_up=True, attempts=max_retries + 1, last=result)
