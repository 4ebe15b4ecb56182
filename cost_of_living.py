#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cost_of_living.py

Purpose:
  Extraction contract for Numbeo cost-of-living pages. Builds the page URL for
  a city, recognises Numbeo's "not enough data" pages, and turns the price
  table into a flat mapping of field name -> positive float.

  The page is requested with displayCurrency=USD, so every extracted value is
  a USD amount. Rows are matched against ITEM_MAPPING, an ordered table of
  (label substring, field name) pairs. That table is the only thing tying the
  parser to the upstream labels: if Numbeo rewords a row, the field silently
  stops being extracted instead of raising.

Imported by: update_data.py

Imports:
  Local modules: config
  Standard library: re, typing, unicodedata, urllib.parse
  Third-party: bs4
"""
import re
import unicodedata
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import quote

from bs4 import BeautifulSoup

import config

# Page markers Numbeo shows instead of a price table.
NO_DATA_MARKERS = (
    "There are no enough data points",
    "We don't have enough data",
)

# Value cells carry this class (e.g. class="priceValue " or "priceValue tr_highlighted").
PRICE_CELL_CLASS = "priceValue"

# (label substring, field name). Checked in order; the first hit wins.
ITEM_MAPPING: List[Tuple[str, str]] = [
    ("Meal at an Inexpensive Restaurant", "mealInexpensive"),
    ("Combo Meal at McDonald", "mcdonalds"),
    ("Cappuccino (Regular", "cappuccino"),
    ("Milk (Regular", "milk"),
    ("Fresh White Bread", "bread"),
    ("White Rice (1 kg)", "rice"),
    ("Eggs (12", "eggs"),
    ("Local Cheese (1 kg)", "cheese"),
    ("Chicken Fillets (1 kg)", "chicken"),
    ("Beef Round", "beef"),
    ("Apples (1 kg)", "apples"),
    ("Bananas (1 kg)", "bananas"),
    ("Tomatoes (1 kg)", "tomatoes"),
    ("Potatoes (1 kg)", "potatoes"),
    ("Onions (1 kg)", "onions"),
    ("Lettuce (1 Head)", "lettuce"),
    ("Bottled Water (1.5 Liter)", "water1_5l"),
    ("Bottle of Wine (Mid-Range)", "wine"),
    ("Monthly Public Transport Pass", "monthlyPass"),
    ("Taxi 1 km (Standard Tariff)", "taxiKm"),
    ("Gasoline (1 Liter)", "gasoline"),
    ("Basic Utilities for 85 m2", "basicUtilities"),
    ("Broadband Internet", "internet"),
    ("Mobile Phone Plan", "mobile"),
    ("Monthly Fitness Club", "gym"),
    ("Cinema Ticket", "cinema"),
    ("Preschool or Kindergarten", "preschool"),
    ("International Primary School", "internationalSchool"),
    ("1 Bedroom Apartment in City Centre", "rent1bedCenter"),
    ("1 Bedroom Apartment Outside", "rent1bedOutside"),
    ("3 Bedroom Apartment in City Centre", "rent3bedCenter"),
    ("3 Bedroom Apartment Outside", "rent3bedOutside"),
    ("Price per Square Meter to Buy Apartment in City Centre", "pricePerSqmCenter"),
    ("Price per Square Meter to Buy Apartment Outside", "pricePerSqmOutside"),
    ("Average Monthly Net Salary", "avgSalary"),
]

KNOWN_FIELDS = frozenset(name for _, name in ITEM_MAPPING)

# Compiled regex used to extract the first numeric token from a string.
_NUM_RE = re.compile(r"[-+]?\d*\.?\d+")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def parse_price(s: str) -> Optional[float]:
    """
    Extract the first numeric token from a price string and return it as float.

    Handles thousands separators (commas) and returns None when the string
    holds no parseable number.

    Args:
        s: Raw text containing a price (e.g., "1,234.56 $").

    Returns:
        The parsed value, or None.
    """
    if not s:
        return None

    # Remove common thousands separators before regex extraction.
    s = s.replace(",", "")
    match = _NUM_RE.search(s)
    if not match:
        return None

    try:
        return float(match.group(0))
    except ValueError:
        return None


def normalize_price_text(text: str) -> str:
    """Undo entity leftovers in a value cell: nbsp, &#36;, stray tags."""
    text = text.replace("&nbsp;", " ").replace("\xa0", " ").replace("&#36;", "$")
    return _TAG_RE.sub("", text).strip()


def match_field(label: str) -> Optional[str]:
    """Return the field name for a row label, or None if no substring matches."""
    for needle, field_name in ITEM_MAPPING:
        if needle in label:
            return field_name
    return None


def iter_price_rows(html: str) -> Iterator[Tuple[str, str]]:
    """
    Yield (label, value text) for every two-column price row on the page.

    A price row is a <tr> whose first cell holds the label and whose second
    cell has a class containing "priceValue". When the value cell wraps the
    amount in a <span>, only the span text is used (the cell may also carry
    a range bar).
    """
    soup = BeautifulSoup(html, "html.parser")
    for tr in soup.find_all("tr"):
        tds = tr.find_all("td", recursive=False)
        if len(tds) < 2:
            continue

        value_td = tds[1]
        classes = " ".join(value_td.get("class") or [])
        if PRICE_CELL_CLASS not in classes:
            continue

        label = tds[0].get_text()
        label = _WS_RE.sub(" ", label).strip()
        span = value_td.find("span")
        raw_value = (span or value_td).get_text()
        yield label, normalize_price_text(raw_value)


# --------------------------------------------------------------------------- #
# Page-level API
# --------------------------------------------------------------------------- #
def has_insufficient_data(html: str) -> bool:
    """True when Numbeo served its "not enough data points" page."""
    return any(marker in html for marker in NO_DATA_MARKERS)


def parse_numbeo_page(html: str) -> Dict[str, float]:
    """
    Extract known price fields from a Numbeo cost-of-living page.

    Args:
        html: Raw page HTML.

    Returns:
        Mapping of field name -> strictly positive value. Rows whose value is
        zero, negative or unparseable are left out; the field is absent, never 0.
        If a field's label appears twice, the later row wins.
    """
    data: Dict[str, float] = {}
    for label, value_text in iter_price_rows(html):
        field_name = match_field(label)
        if field_name is None:
            continue
        price = parse_price(value_text)
        if price is not None and price > 0:
            data[field_name] = price
    return data


def city_slug(city_id: str, city_name: str) -> str:
    """
    Numbeo URL slug for a city.

    Uses NUMBEO_SLUGS when the id has an override; otherwise strips
    diacritics and apostrophes, turns whitespace runs into hyphens and drops
    periods ("St. John's" -> "St-Johns", "Zürich" -> "Zurich").
    """
    override = config.NUMBEO_SLUGS.get(city_id)
    if override:
        return override

    decomposed = unicodedata.normalize("NFD", city_name)
    slug = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = re.sub(r"['’]", "", slug)
    slug = _WS_RE.sub("-", slug.strip())
    return slug.replace(".", "")


def city_url(city_id: str, city_name: str, base_url: str = config.NUMBEO_BASE_URL) -> str:
    """Full USD-denominated Numbeo page URL for a city."""
    slug = quote(city_slug(city_id, city_name), safe="-")
    return f"{base_url}{slug}?displayCurrency=USD"
