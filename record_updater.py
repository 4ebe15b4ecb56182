"""
record_updater.py

Purpose:
  Merge freshly scraped Numbeo fields into one city record. Each target leaf
  is a dual-currency amount {"local": ..., "usd": ...}; the USD side comes
  from the page and the local side is back-converted with the city's salary
  anchor. Only fields with a positive source value are written, nothing is
  ever deleted, and `metrics.updatedAt` / `metrics.sources` are stamped only
  when at least one field changed.

Imported by: update_data.py

Imports:
  Local modules: config, metrics
  Standard library: dataclasses, datetime, typing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

import config
from metrics import (
    apartment_prices,
    estimate_monthly_groceries,
    interpolate_two_bedroom,
    local_from_usd,
)

# Direct copies: (source field, parent path under metrics, leaf key, label).
# Salary comes first so every later conversion uses the refreshed anchor.
DIRECT_FIELDS: Tuple[Tuple[str, Tuple[str, ...], str, str], ...] = (
    ("avgSalary", ("salary",), "average", "salary.average"),
    ("rent1bedCenter", ("rent",), "oneBedroom", "rent.1bed"),
    ("rent3bedCenter", ("rent",), "threeBedroom", "rent.3bed"),
)

LATE_FIELDS: Tuple[Tuple[str, Tuple[str, ...], str, str], ...] = (
    ("mealInexpensive", ("food",), "restaurantMeal", "food.restaurant"),
    ("mcdonalds", ("food",), "fastFood", "food.fastfood"),
    ("monthlyPass", ("transport",), "monthlyPass", "transport.pass"),
    ("taxiKm", ("transport",), "taxiPerKm", "transport.taxi"),
    ("gasoline", ("transport",), "gasoline", "transport.gas"),
    ("basicUtilities", ("utilities",), "basic", "utilities.basic"),
    ("internet", ("utilities",), "internet", "utilities.internet"),
    ("mobile", ("utilities",), "mobile", "utilities.mobile"),
    ("gym", ("lifestyle",), "gymMembership", "lifestyle.gym"),
    ("cinema", ("lifestyle",), "cinema", "lifestyle.cinema"),
    ("cappuccino", ("lifestyle",), "cappuccino", "lifestyle.cappuccino"),
    ("preschool", ("education",), "preschool", "education.preschool"),
    ("internationalSchool", ("education",), "internationalSchool", "education.intlSchool"),
)

# (price-per-sqm field, metrics.property key, purchase block, label prefix for sizes)
PROPERTY_ZONES = (
    ("pricePerSqmCenter", "cityCenter", "buyCityCenter", "property.center", "property.buy"),
    ("pricePerSqmOutside", "outside", "buyOutside", "property.outside", "property.buyOut"),
)

_SIZE_LABELS = {"oneBedroom": "1bed", "twoBedroom": "2bed", "threeBedroom": "3bed"}


@dataclass
class UpdateResult:
    updated: bool = False
    fields: List[str] = field(default_factory=list)


def _is_positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _parent(metrics: Dict[str, Any], path: Tuple[str, ...]) -> Dict[str, Any]:
    node = metrics
    for key in path:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    return node


class _Writer:
    """Writes dual-currency leaves into one city and records the labels."""

    def __init__(self, city: Dict[str, Any]):
        self.city = city
        metrics = city.get("metrics")
        if not isinstance(metrics, dict):
            metrics = {}
            city["metrics"] = metrics
        self.metrics = metrics
        self.fields: List[str] = []

    def write(self, path: Tuple[str, ...], key: str, usd_value: Optional[float], label: str) -> None:
        if not _is_positive(usd_value):
            return
        parent = _parent(self.metrics, path)
        local_value = local_from_usd(usd_value, self.city)
        parent[key] = {"local": round(local_value, 2), "usd": round(usd_value, 2)}
        self.fields.append(label)


def update_city_metrics(city: Dict[str, Any],
                        data: Mapping[str, float],
                        today: Optional[date] = None,
                        source_tag: str = config.SOURCE_TAG) -> UpdateResult:
    """
    Apply extracted Numbeo fields to a city record in place.

    Args:
        city: City record as loaded from the entity store.
        data: Extracted fields (USD values), e.g. {"avgSalary": 2000.0}.
        today: Date stamped into `metrics.updatedAt`; defaults to today.
        source_tag: Provenance tag added to `metrics.sources`.

    Returns:
        UpdateResult with `updated` and the changed-field labels in write order.
        Applying the same data twice leaves the record unchanged the second time.
    """
    writer = _Writer(city)

    for source, path, key, label in DIRECT_FIELDS:
        writer.write(path, key, data.get(source), label)

    rent1 = data.get("rent1bedCenter")
    rent3 = data.get("rent3bedCenter")
    if _is_positive(rent1) and _is_positive(rent3):
        writer.write(("rent",), "twoBedroom", interpolate_two_bedroom(rent1, rent3), "rent.2bed")

    for source, zone_key, buy_key, zone_label, size_prefix in PROPERTY_ZONES:
        per_sqm = data.get(source)
        if not _is_positive(per_sqm):
            continue
        writer.write(("property",), zone_key, per_sqm, zone_label)
        for size_key, price in apartment_prices(per_sqm).items():
            writer.write(("property", buy_key), size_key, price,
                         f"{size_prefix}{_SIZE_LABELS[size_key]}")

    groceries = estimate_monthly_groceries(data)
    if groceries is not None:
        writer.write(("food",), "groceries", groceries, "food.groceries")

    for source, path, key, label in LATE_FIELDS:
        writer.write(path, key, data.get(source), label)

    if writer.fields:
        metrics = writer.metrics
        metrics["updatedAt"] = (today or date.today()).isoformat()
        sources = metrics.get("sources") or []
        if source_tag not in sources:
            sources = [*sources, source_tag]
        metrics["sources"] = sources

    return UpdateResult(updated=bool(writer.fields), fields=writer.fields)
