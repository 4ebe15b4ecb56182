"""
update_data.py

Purpose:
  Batch orchestrator for the cost-of-living updater. Loads the city store,
  refreshes the inflation store once, then walks the cities strictly one at
  a time:

    resume-skip -> fetch (with retries) -> no-data / under-threshold /
    fetch-failed / rate-limited -> parse -> update -> OK / no-changes

  Pacing is slow and irregular (random 4-8 s between cities,
  a 2 minute cooldown after 5 cities in a row exhausted their retries).
  Progress is checkpointed to disk every SAVE_INTERVAL successes and once at
  the end; dry-run mode never writes.

  All per-run counters live in a `RunState` that is passed through each
  step, and every wait goes through an injected `sleep`, so the whole state
  machine can be driven in tests without real delays or network access.

Imported by: main.py

Imports:
  Local modules: config, cost_of_living, fetcher, inflation, record_updater,
    retry, store
  Standard library: dataclasses, datetime, enum, functools, logging, random,
    time, typing
  Third-party: pandas, requests
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import requests

import config
from config import UpdaterSettings, get_settings
from cost_of_living import city_url, has_insufficient_data, parse_numbeo_page
from fetcher import FetchResult, fetch_json, fetch_page
from inflation import update_inflation
from record_updater import update_city_metrics
from retry import fetch_with_retry, format_duration
from store import StoreError, UpdaterError, load_cities, save_cities

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


class CityNotFoundError(UpdaterError):
    """Raised when --city names an id that is not in the store."""


class Outcome(str, Enum):
    UPDATED = "updated"
    NO_CHANGES = "no-changes"
    RESUME_SKIPPED = "resume-skipped"
    NO_DATA = "no-data"
    UNDER_THRESHOLD = "under-threshold"
    FETCH_FAILED = "fetch-failed"
    RATE_LIMITED = "rate-limited"


@dataclass
class RunOptions:
    city_id: Optional[str] = None
    resume: bool = False
    dry_run: bool = False
    inflation_only: bool = False


@dataclass
class RunState:
    """Counters and per-city outcomes for one run. Never persisted."""

    success_count: int = 0
    skip_count: int = 0
    rate_limit_count: int = 0
    resume_skip_count: int = 0
    consecutive_rate_limits: int = 0
    empty_parse_count: int = 0
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, city: Dict[str, Any], outcome: Outcome,
               fields: Optional[List[str]] = None, status: Optional[int] = None) -> None:
        if outcome is Outcome.UPDATED:
            self.success_count += 1
        elif outcome is Outcome.RESUME_SKIPPED:
            self.resume_skip_count += 1
        elif outcome is Outcome.RATE_LIMITED:
            self.rate_limit_count += 1
        else:
            self.skip_count += 1
        self.rows.append({
            "city_id": city.get("id"),
            "city": city.get("name"),
            "outcome": outcome.value,
            "status": status,
            "fields": ", ".join(fields or []),
        })

    def summary(self) -> str:
        parts = [f"{self.success_count} updated"]
        if self.skip_count:
            parts.append(f"{self.skip_count} skipped")
        if self.rate_limit_count:
            parts.append(f"{self.rate_limit_count} rate-limited")
        if self.resume_skip_count:
            parts.append(f"{self.resume_skip_count} already done today")
        return ", ".join(parts)

    def outcomes_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=["city_id", "city", "outcome", "status", "fields"])


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def random_delay(rng: Optional[random.Random] = None,
                 low: float = config.MIN_DELAY_S,
                 high: float = config.MAX_DELAY_S) -> float:
    """Pause between cities, uniform in [low, high) seconds."""
    return low + (rng or random).random() * (high - low)


def select_cities(cities: List[Dict[str, Any]], city_id: Optional[str]) -> List[Dict[str, Any]]:
    if not city_id:
        return list(cities)
    selected = [c for c in cities if c.get("id") == city_id]
    if not selected:
        raise CityNotFoundError(f'City "{city_id}" not found')
    return selected


def updated_today(city: Dict[str, Any], today: date) -> bool:
    metrics = city.get("metrics") or {}
    return metrics.get("updatedAt") == today.isoformat()


def country_codes(cities: List[Dict[str, Any]]) -> List[str]:
    """Distinct country codes in store order."""
    return list(dict.fromkeys(c["countryCode"] for c in cities if c.get("countryCode")))


def _describe_fields(fields: List[str], limit: int = 5) -> str:
    shown = ", ".join(fields[:limit])
    return f"{len(fields)} fields: {shown}{'...' if len(fields) > limit else ''}"


# -----------------------------------------------------------------------------
# Per-city step
# -----------------------------------------------------------------------------
def process_city(city: Dict[str, Any],
                 state: RunState,
                 options: RunOptions,
                 fetch: Callable[[str], FetchResult],
                 checkpoint: Callable[[str], None],
                 sleep: Sleep = time.sleep,
                 rng: Optional[random.Random] = None,
                 today: Optional[date] = None,
                 base_url: str = config.NUMBEO_BASE_URL) -> Outcome:
    """
    Run one city through fetch, parse and update, recording the outcome.

    Args:
        city: City record, updated in place on success.
        state: Run counters; mutated.
        options: Run flags (resume, dry-run, ...).
        fetch: Single-attempt page fetch, wrapped here with retries.
        checkpoint: Persists the whole collection; called before a cooldown.
        sleep: Wait function for retries and cooldowns.
        rng: Random source for backoff jitter.
        today: Date for the resume check and update stamp; read from the
            clock for this city when omitted.
        base_url: Numbeo page prefix.

    Returns:
        The `Outcome` for this city. The inter-city delay is not applied here.
    """
    today = today or date.today()
    name = city.get("name") or city.get("id")

    if options.resume and updated_today(city, today):
        logger.info("SKIP (already updated today)")
        state.record(city, Outcome.RESUME_SKIPPED)
        return Outcome.RESUME_SKIPPED

    url = city_url(city["id"], name, base_url)
    result = fetch_with_retry(url, name, fetch=fetch, sleep=sleep, rng=rng)

    status = result.last.status if result.last is not None else None
    if not result.ok:
        if not result.gave_up:
            state.record(city, Outcome.FETCH_FAILED, status=status)
            return Outcome.FETCH_FAILED

        state.record(city, Outcome.RATE_LIMITED, status=status)
        state.consecutive_rate_limits += 1
        if state.consecutive_rate_limits >= config.CONSECUTIVE_RATE_LIMIT_THRESHOLD:
            logger.info("%d consecutive rate limits - pausing %s...",
                        state.consecutive_rate_limits, format_duration(config.COOLDOWN_S))
            if not options.dry_run and state.success_count > 0:
                checkpoint(f"Saved progress ({state.success_count} cities so far)")
            sleep(config.COOLDOWN_S)
            state.consecutive_rate_limits = 0
            logger.info("Resuming...")
        return Outcome.RATE_LIMITED

    state.consecutive_rate_limits = 0
    html = result.html

    if has_insufficient_data(html):
        logger.info("SKIP (no data on Numbeo)")
        state.record(city, Outcome.NO_DATA, status=status)
        return Outcome.NO_DATA

    data = parse_numbeo_page(html)
    if not data:
        state.empty_parse_count += 1
        logger.warning("No known fields on %s; page labels may have drifted", url)
    if len(data) < config.MIN_FIELDS:
        logger.info("SKIP (only %d fields parsed)", len(data))
        state.record(city, Outcome.UNDER_THRESHOLD, status=status)
        return Outcome.UNDER_THRESHOLD

    update = update_city_metrics(city, data, today=today)
    if update.updated:
        logger.info("OK (%s)", _describe_fields(update.fields))
        state.record(city, Outcome.UPDATED, update.fields, status=status)
        return Outcome.UPDATED

    logger.info("NO CHANGES")
    state.record(city, Outcome.NO_CHANGES, status=status)
    return Outcome.NO_CHANGES


# -----------------------------------------------------------------------------
# Batch
# -----------------------------------------------------------------------------
def run_batch(targets: List[Dict[str, Any]],
              options: RunOptions,
              save: Callable[[], None],
              fetch: Callable[[str], FetchResult],
              sleep: Sleep = time.sleep,
              rng: Optional[random.Random] = None,
              today: Optional[date] = None,
              base_url: str = config.NUMBEO_BASE_URL,
              save_interval: int = config.SAVE_INTERVAL,
              written_to: str = "") -> RunState:
    """
    Process `targets` sequentially and persist progress through `save`.

    `save` must write the whole collection (not just `targets`); it is never
    called in dry-run mode.
    """
    state = RunState()
    total = len(targets)
    started = time.monotonic()

    def checkpoint(message: str) -> None:
        save()
        logger.info("  %s", message)

    logger.info("Scraping Numbeo...")
    for i, city in enumerate(targets, start=1):
        logger.info("  [%d/%d] %s...", i, total, city.get("name") or city.get("id"))
        outcome = process_city(city, state, options, fetch, checkpoint,
                               sleep=sleep, rng=rng, today=today, base_url=base_url)
        if outcome is Outcome.RESUME_SKIPPED:
            continue

        if (outcome is Outcome.UPDATED and not options.dry_run
                and state.success_count % save_interval == 0):
            checkpoint(f"Intermediate save ({state.success_count} cities updated so far)")

        sleep(random_delay(rng))

    elapsed = format_duration(time.monotonic() - started)
    if not options.dry_run and state.success_count > 0:
        save()
        logger.info("Done in %s! %s", elapsed, state.summary())
        if written_to:
            logger.info("   Written to %s", written_to)
    elif options.dry_run:
        logger.info("[DRY RUN] %s (%s)", state.summary(), elapsed)
    else:
        logger.info("No changes to write (%s)", elapsed)

    if state.empty_parse_count:
        logger.warning("%d fetched pages yielded no known fields", state.empty_parse_count)
    if state.rate_limit_count:
        logger.warning("%d cities were rate-limited. Run again with --resume to retry only those.",
                       state.rate_limit_count)
    return state


def refresh_inflation(cities: List[Dict[str, Any]],
                      settings: UpdaterSettings,
                      dry_run: bool,
                      fetch: Callable[[str], Any],
                      today: Optional[date] = None) -> int:
    """Inflation step; any failure is logged and reported as 0 updates."""
    try:
        return update_inflation(settings.inflation_path, country_codes(cities), dry_run=dry_run,
                                fetch=fetch, base_url=settings.imf_base_url, today=today)
    except (StoreError, OSError, requests.RequestException) as exc:
        logger.error("Inflation update failed: %s", exc)
        return 0


def log_banner(options: RunOptions, today: date) -> None:
    logger.info("Cost-of-living data updater")
    logger.info("   Mode: %s", "DRY RUN" if options.dry_run else "LIVE")
    if options.city_id:
        logger.info("   Target city: %s", options.city_id)
    if options.resume:
        logger.info("   Resume: skipping cities updated today (%s)", today.isoformat())
    if options.inflation_only:
        logger.info("   Inflation only")
    logger.info("   Rate limit: %g-%gs delay, %d retries, %gs initial backoff",
                config.MIN_DELAY_S, config.MAX_DELAY_S, config.MAX_RETRIES, config.INITIAL_BACKOFF_S)
    logger.info("   User-Agent pool: %d variants", len(config.USER_AGENTS))


def run(options: RunOptions,
        settings: Optional[UpdaterSettings] = None,
        fetch: Optional[Callable[[str], FetchResult]] = None,
        fetch_api: Optional[Callable[[str], Any]] = None,
        sleep: Optional[Sleep] = None,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None) -> RunState:
    """
    Full updater run: validate the target, refresh inflation, scrape cities.

    Args:
        options: Run flags.
        settings: Paths, timeout and base URLs; read from the environment if omitted.
        fetch: Single-attempt page fetch; defaults to `fetcher.fetch_page`.
        fetch_api: JSON fetch for the IMF API; defaults to `fetcher.fetch_json`.
        sleep: Wait function used for every pause.
        rng: Random source for delays and jitter.
        today: Fixed date for every stamp and resume check; when omitted each
            city reads the clock as it is processed.

    Returns:
        The final `RunState` (empty when only inflation was refreshed).

    Raises:
        CityNotFoundError: `options.city_id` is not in the store. Raised
            before any network request.
        StoreError: The city store cannot be read.
    """
    settings = settings or get_settings()
    fetch = fetch or partial(fetch_page, timeout=settings.request_timeout)
    fetch_api = fetch_api or partial(fetch_json, timeout=settings.request_timeout)
    sleep = sleep or time.sleep

    log_banner(options, today or date.today())
    cities = load_cities(settings.cities_path)
    targets = select_cities(cities, options.city_id)

    refresh_inflation(cities, settings, options.dry_run, fetch_api, today=today)
    if options.inflation_only:
        logger.info("Done (inflation only)")
        return RunState()

    return run_batch(
        targets,
        options,
        save=lambda: save_cities(settings.cities_path, cities),
        fetch=fetch,
        sleep=sleep,
        rng=rng,
        today=today,
        base_url=settings.numbeo_base_url,
        written_to=str(settings.cities_path),
    )
