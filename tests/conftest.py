import json
from datetime import date
from pathlib import Path

import pytest

TODAY = date(2026, 3, 14)


def price_row(label: str, value: str) -> str:
    """One Numbeo-style price row."""
    return (
        f'<tr><td>{label} </td> <td style="text-align: right" class="priceValue ">'
        f'<span class="first_currency">{value}</span></td>'
        f'<td class="priceBarTd"><span class="barTextLeft">1.00</span></td></tr>'
    )


def numbeo_page(rows) -> str:
    body = "\n".join(price_row(label, value) for label, value in rows)
    return (
        "<html><body><h1>Cost of Living</h1>"
        f'<table class="data_wide_table new_bar_table">{body}</table>'
        "</body></html>"
    )


FULL_ROWS = [
    ("Meal at an Inexpensive Restaurant", "15.00&nbsp;&#36;"),
    ("Combo Meal at McDonalds (or Equivalent Fast-Food Meal)", "10.50&nbsp;&#36;"),
    ("Cappuccino (Regular Size)", "4.10&nbsp;&#36;"),
    ("Milk (Regular, 1 Liter)", "1.20&nbsp;&#36;"),
    ("Fresh White Bread (500g Loaf)", "2.00&nbsp;&#36;"),
    ("Eggs (12, Large Size)", "3.50&nbsp;&#36;"),
    ("Chicken Fillets (1 kg)", "11.00&nbsp;&#36;"),
    ("Apples (1 kg)", "3.00&nbsp;&#36;"),
    ("Monthly Public Transport Pass (Regular Price)", "60.00&nbsp;&#36;"),
    ("1 Bedroom Apartment in City Centre", "1,300.00&nbsp;&#36;"),
    ("3 Bedroom Apartment in City Centre", "2,300.00&nbsp;&#36;"),
    ("Average Monthly Net Salary (After Tax)", "3,000.00&nbsp;&#36;"),
]


@pytest.fixture()
def full_page() -> str:
    return numbeo_page(FULL_ROWS)


def make_city(city_id="x", name="Testville", country_code="DE", updated_at="2025-01-01",
              salary=(0, 0)):
    return {
        "id": city_id,
        "name": name,
        "countryCode": country_code,
        "metrics": {
            "salary": {"average": {"local": salary[0], "usd": salary[1]}},
            "rent": {"oneBedroom": {"local": 0, "usd": 0}},
            "updatedAt": updated_at,
            "sources": [],
        },
    }


class SleepRecorder:
    """Stands in for time.sleep and remembers every requested wait."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture()
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def stores(tmp_path: Path):
    """Write a two-city store and a matching inflation store, return their paths."""
    cities = [
        make_city("alpha", "Alpha", "DE", salary=(2700, 3000)),
        make_city("beta", "Beta", "FR"),
    ]
    cities_path = tmp_path / "cities.json"
    cities_path.write_text(json.dumps(cities, indent=2) + "\n", encoding="utf-8")

    inflation_doc = {
        "lastUpdated": "2025-01-01",
        "source": "IMF",
        "countries": {"DE": {"name": "Germany", "inflation2025": 1.0, "notes": ""}},
    }
    inflation_path = tmp_path / "inflation.json"
    inflation_path.write_text(json.dumps(inflation_doc, indent=2) + "\n", encoding="utf-8")
    return cities_path, inflation_path
