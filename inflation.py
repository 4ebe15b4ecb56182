"""
inflation.py

Purpose:
  Refresh the per-country inflation store from the IMF DataMapper API
  (indicator PCPIPCH, annual consumer price inflation). Countries are looked
  up by their ISO alpha-2 code through `config.ISO2_TO_IMF`; codes without a
  mapping are skipped, and a country whose request or payload fails is simply
  left out of the result.

  Merging only touches countries that already exist in the store. It copies
  the 2025-2027 rates and derives `propertyGrowth2026` as the 2024-2026
  average scaled by 1.3.

Imported by: update_data.py

Imports:
  Local modules: config, fetcher, store
  Standard library: datetime, logging, typing
  Third-party: pandas, requests
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import pandas as pd
import requests

import config
from fetcher import fetch_json
from store import inflation_countries, load_inflation, save_inflation

logger = logging.getLogger(__name__)

YearlyRates = Dict[str, float]


def imf_url(imf_code: str, base_url: str = config.IMF_BASE_URL) -> str:
    return f"{base_url}{config.IMF_INDICATOR}/{imf_code}"


def extract_series(payload: Any, imf_code: str,
                   year_range=config.INFLATION_YEAR_RANGE) -> Optional[YearlyRates]:
    """
    Pull the year -> rate series for one country out of a DataMapper payload.

    Args:
        payload: Decoded JSON, shaped {"values": {"PCPIPCH": {"DEU": {"2024": 2.4, ...}}}}.
        imf_code: Three-letter IMF country code.
        year_range: Inclusive (first, last) years to keep.

    Returns:
        Rates rounded to 2 decimals keyed by year string, or None when the
        payload has no series for the country.
    """
    series = payload["values"][config.IMF_INDICATOR].get(imf_code)
    if not series:
        return None

    rates = pd.to_numeric(pd.Series(series, dtype="object"), errors="coerce").dropna()
    years = pd.to_numeric(pd.Series(rates.index, index=rates.index), errors="coerce")
    first, last = year_range
    rates = rates[(years >= first) & (years <= last)].round(2)
    return {str(year): float(rate) for year, rate in rates.items()}


def fetch_imf_inflation(country_codes: Iterable[str],
                        fetch: Callable[[str], Any] = fetch_json,
                        base_url: str = config.IMF_BASE_URL) -> Dict[str, YearlyRates]:
    """
    Fetch inflation series for every mappable country code.

    Args:
        country_codes: ISO alpha-2 codes, duplicates allowed.
        fetch: URL -> decoded JSON; raising is treated as "no data".
        base_url: IMF DataMapper API prefix.

    Returns:
        {iso2: {year: rate}} for the countries that returned data.
    """
    logger.info("Fetching IMF inflation data...")
    wanted = set(country_codes)
    results: Dict[str, YearlyRates] = {}

    for iso2, imf3 in config.ISO2_TO_IMF.items():
        if iso2 not in wanted:
            continue
        try:
            series = extract_series(fetch(imf_url(imf3, base_url)), imf3)
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.debug("IMF fetch failed for %s (%s): %r", iso2, imf3, exc)
            continue
        if series:
            results[iso2] = series

    logger.info("  Got inflation data for %d countries", len(results))
    return results


def merge_inflation(document: Dict[str, Any],
                    imf_data: Mapping[str, YearlyRates],
                    today: Optional[date] = None) -> int:
    """
    Merge fetched series into an inflation document in place.

    Only countries already present are updated; unknown codes are ignored.
    When the document uses the wrapped {"countries": ...} form and something
    changed, `lastUpdated` is set to `today`.

    Returns:
        Number of countries updated.
    """
    countries = inflation_countries(document)
    updated = 0
    for code, yearly in imf_data.items():
        entry = countries.get(code)
        if not isinstance(entry, dict):
            continue

        for year in config.INFLATION_COPY_YEARS:
            if yearly.get(year) is not None:
                entry[f"inflation{year}"] = yearly[year]

        growth_years = [yearly.get(y) for y in config.PROPERTY_GROWTH_YEARS]
        if all(v is not None for v in growth_years):
            avg = sum(growth_years) / len(growth_years)
            entry["propertyGrowth2026"] = round(avg * config.PROPERTY_GROWTH_MULTIPLIER, 2)
        updated += 1

    if updated and countries is not document:
        document["lastUpdated"] = (today or date.today()).isoformat()
    return updated


def update_inflation(path, country_codes: Iterable[str], dry_run: bool = False,
                     fetch: Callable[[str], Any] = fetch_json,
                     base_url: str = config.IMF_BASE_URL,
                     today: Optional[date] = None) -> int:
    """
    Fetch IMF data and fold it into the inflation store at `path`.

    Returns:
        Number of countries updated (or that would be, in dry-run mode).

    Raises:
        store.StoreError: The store cannot be read.
    """
    imf_data = fetch_imf_inflation(country_codes, fetch=fetch, base_url=base_url)
    if not imf_data:
        return 0

    document = load_inflation(path)
    updated = merge_inflation(document, imf_data, today=today)
    if dry_run:
        logger.info("  [DRY RUN] Would update inflation for %d countries", updated)
    else:
        save_inflation(path, document)
        logger.info("  Updated inflation for %d countries -> %s", updated, path)
    return updated
