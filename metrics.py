"""
metrics.py

Purpose:
  Derived cost-of-living figures built from raw Numbeo fields:
    - a monthly grocery basket from per-item prices,
    - local-currency back-conversion using the city's salary as FX anchor,
    - two-bedroom rent interpolated between one- and three-bedroom rent,
    - apartment purchase prices from price per square metre.

Imported by: record_updater.py

Imports:
  Local modules: config
  Standard library: typing
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

import config

# Monthly consumption per basket item (units as listed on Numbeo).
GROCERY_BASKET: Tuple[Tuple[str, float], ...] = (
    ("milk", 8),        # litres
    ("bread", 4),       # 500 g loaves
    ("rice", 2),        # kg
    ("eggs", 2),        # dozen
    ("cheese", 0.5),    # kg
    ("chicken", 4),     # kg
    ("beef", 2),        # kg
    ("apples", 2),
    ("bananas", 2),
    ("tomatoes", 2),
    ("potatoes", 3),
    ("onions", 1),
    ("lettuce", 4),     # heads
    ("water1_5l", 8),   # 1.5 l bottles
)

TWO_BEDROOM_POSITION = 0.45

# Assumed floor areas (m2) used to price whole apartments.
APARTMENT_AREAS: Tuple[Tuple[str, float], ...] = (
    ("oneBedroom", 50),
    ("twoBedroom", 75),
    ("threeBedroom", 110),
)


def _positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def estimate_monthly_groceries(data: Mapping[str, float],
                               min_items: int = config.MIN_BASKET_ITEMS) -> Optional[int]:
    """
    Estimate a monthly grocery bill from basket item prices.

    Args:
        data: Extracted fields (USD prices).
        min_items: Items that must be priced for the estimate to count.

    Returns:
        The rounded weighted sum, or None when fewer than `min_items` basket
        items have a positive price.
    """
    total = 0.0
    items = 0
    for name, quantity in GROCERY_BASKET:
        price = data.get(name)
        if _positive(price):
            total += price * quantity
            items += 1

    if items < min_items:
        return None
    return int(round(total))


def fx_rate(city: Mapping[str, Any]) -> Optional[float]:
    """Local units per USD implied by the city's current average salary."""
    salary = ((city.get("metrics") or {}).get("salary") or {}).get("average") or {}
    local, usd = salary.get("local"), salary.get("usd")
    if _positive(local) and _positive(usd):
        return local / usd
    return None


def local_from_usd(usd_amount: float, city: Mapping[str, Any]) -> float:
    """
    Convert a USD amount to the city's local currency.

    Without a salary anchor the USD figure is returned unchanged; that is an
    approximation, not an FX lookup.
    """
    rate = fx_rate(city)
    if rate is None:
        return usd_amount
    return round(usd_amount * rate, 2)


def interpolate_two_bedroom(one_bedroom: float, three_bedroom: float,
                            position: float = TWO_BEDROOM_POSITION) -> float:
    return one_bedroom + (three_bedroom - one_bedroom) * position


def apartment_prices(price_per_sqm: float) -> Dict[str, float]:
    """Purchase price per apartment size from a price per square metre."""
    return {key: price_per_sqm * area for key, area in APARTMENT_AREAS}
