"""
config.py

Purpose:
  Central configuration for the cost-of-living data updater. Tuning values for
  pacing, retries and thresholds live here as module constants; paths, base
  URLs and the request timeout can be overridden through environment variables
  via the `UpdaterSettings` dataclass.

Imported by: fetcher.py, retry.py, cost_of_living.py, metrics.py,
  record_updater.py, inflation.py, update_data.py, main.py

Imports:
  Standard library: os, dataclasses, pathlib, typing
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

PROJECT_ROOT = Path(__file__).resolve().parent
DATA_DIR = PROJECT_ROOT / "data"

# -----------------------------------------------------------------------------
# Pacing and retry policy (seconds)
# -----------------------------------------------------------------------------
MIN_DELAY_S = 4.0
MAX_DELAY_S = 8.0
MAX_RETRIES = 3
INITIAL_BACKOFF_S = 30.0
MAX_BACKOFF_S = 300.0
JITTER = 0.2
REQUEST_TIMEOUT_S = 30.0

# Status codes treated as "blocked, try again later".
RATE_LIMIT_STATUSES = frozenset({429, 403})

# -----------------------------------------------------------------------------
# Batch policy
# -----------------------------------------------------------------------------
SAVE_INTERVAL = 10
CONSECUTIVE_RATE_LIMIT_THRESHOLD = 5
COOLDOWN_S = 120.0
MIN_FIELDS = 3
MIN_BASKET_ITEMS = 5
SOURCE_TAG = "Numbeo"

# -----------------------------------------------------------------------------
# Inflation aggregate
# -----------------------------------------------------------------------------
INFLATION_YEAR_RANGE: Tuple[int, int] = (2020, 2030)
INFLATION_COPY_YEARS = ("2025", "2026", "2027")
PROPERTY_GROWTH_YEARS = ("2024", "2025", "2026")
PROPERTY_GROWTH_MULTIPLIER = 1.3
IMF_INDICATOR = "PCPIPCH"

NUMBEO_BASE_URL = "https://www.numbeo.com/cost-of-living/in/"
IMF_BASE_URL = "https://www.imf.org/external/datamapper/api/v1/"

# Pool of realistic desktop browser identities; one is picked per request.
USER_AGENTS = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36 Edg/130.0.0.0",
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
)

# Headers sent with every page request, on top of the rotating User-Agent.
BROWSER_HEADERS: Dict[str, str] = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

# Numbeo slugs for cities whose display name does not map onto the URL.
NUMBEO_SLUGS: Dict[str, str] = {
    "kyiv": "Kiev",
    "washington-dc": "Washington",
    "ho-chi-minh": "Ho-Chi-Minh-City",
    "sao-paulo": "Sao-Paulo",
    "mexico-city": "Mexico-City",
    "panama-city": "Panama-City",
    "san-jose": "San-Jose-Costa-Rica",
    "buenos-aires": "Buenos-Aires",
    "new-york": "New-York",
    "los-angeles": "Los-Angeles",
    "san-francisco": "San-Francisco",
    "san-diego": "San-Diego",
    "kuala-lumpur": "Kuala-Lumpur",
    "hong-kong": "Hong-Kong",
    "milton-keynes": "Milton-Keynes",
    "st-albans": "St-Albans",
    "bogota": "Bogota",
    "medellin": "Medellin",
    "santiago": "Santiago",
    # Moscow-area suburbs share names with towns elsewhere
    "krasnogorsk": "Krasnogorsk-Russia",
    "odintsovo": "Odintsovo-Russia",
    "khimki": "Khimki-Russia",
    "mytishchi": "Mytishchi-Russia",
    "balashikha": "Balashikha-Russia",
    "lyubertsy": "Lyubertsy-Russia",
    "podolsk": "Podolsk-Russia",
    "korolev": "Korolev-Russia",
    "dolgoprudny": "Dolgoprudny-Russia",
    "domodedovo": "Domodedovo-Russia",
}

# ISO 3166-1 alpha-2 -> IMF DataMapper (alpha-3) country codes.
ISO2_TO_IMF: Dict[str, str] = {
    "DE": "DEU", "PT": "PRT", "RU": "RUS", "GE": "GEO", "UA": "UKR",
    "BY": "BLR", "KZ": "KAZ", "AZ": "AZE", "AM": "ARM", "UZ": "UZB",
    "FR": "FRA", "ES": "ESP", "NL": "NLD", "AT": "AUT", "CZ": "CZE",
    "PL": "POL", "HU": "HUN", "IT": "ITA", "TH": "THA", "GB": "GBR",
    "US": "USA", "JP": "JPN", "SG": "SGP", "HK": "HKG", "KR": "KOR",
    "CN": "CHN", "IN": "IND", "MY": "MYS", "VN": "VNM", "TW": "TWN",
    "ID": "IDN", "PH": "PHL", "AE": "ARE", "UY": "URY", "AR": "ARG",
    "BR": "BRA", "CL": "CHL", "PE": "PER", "CO": "COL", "MX": "MEX",
    "PA": "PAN", "CR": "CRI",
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw.strip() else default
    except ValueError:
        return default


@dataclass(frozen=True)
class UpdaterSettings:
    """Environment-driven settings for one updater process.

    Attributes:
        cities_path: JSON array of city records (the entity store).
        inflation_path: JSON document with per-country inflation figures.
        request_timeout: Seconds before an HTTP request counts as a network error.
        numbeo_base_url: Prefix for city pages; the slug is appended.
        imf_base_url: Prefix for the IMF DataMapper API.
    """

    cities_path: Path = field(
        default_factory=lambda: Path(os.getenv("COL_CITIES_PATH", str(DATA_DIR / "cities.json")))
    )
    inflation_path: Path = field(
        default_factory=lambda: Path(os.getenv("COL_INFLATION_PATH", str(DATA_DIR / "inflation.json")))
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("COL_REQUEST_TIMEOUT", REQUEST_TIMEOUT_S)
    )
    numbeo_base_url: str = field(
        default_factory=lambda: os.getenv("COL_NUMBEO_BASE_URL", NUMBEO_BASE_URL)
    )
    imf_base_url: str = field(
        default_factory=lambda: os.getenv("COL_IMF_BASE_URL", IMF_BASE_URL)
    )


def get_settings() -> UpdaterSettings:
    """Build settings from the current environment."""
    return UpdaterSettings()
