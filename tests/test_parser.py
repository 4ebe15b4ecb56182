import pytest

from cost_of_living import (
    ITEM_MAPPING,
    KNOWN_FIELDS,
    city_slug,
    city_url,
    has_insufficient_data,
    match_field,
    parse_numbeo_page,
    parse_price,
)
from conftest import numbeo_page


def test_full_page_extracts_every_listed_row(full_page):
    data = parse_numbeo_page(full_page)
    assert data["mealInexpensive"] == 15.0
    assert data["mcdonalds"] == 10.5
    assert data["rent1bedCenter"] == 1300.0
    assert data["rent3bedCenter"] == 2300.0
    assert data["avgSalary"] == 3000.0
    assert len(data) == 12
    assert set(data) <= KNOWN_FIELDS


@pytest.mark.parametrize("value", ["0.00&nbsp;&#36;", "-5.00&nbsp;&#36;", "?", ""])
def test_non_positive_or_unparseable_value_leaves_field_absent(value):
    html = numbeo_page([
        ("Cinema Ticket, International Release", value),
        ("Gasoline (1 Liter)", "1.75&nbsp;&#36;"),
    ])
    data = parse_numbeo_page(html)
    assert "cinema" not in data
    assert data == {"gasoline": 1.75}


def test_rows_without_price_cell_class_are_ignored():
    html = (
        "<table><tr><td>Cinema Ticket</td><td class='other'><span>12.00</span></td></tr>"
        "<tr><td>Gasoline (1 Liter)</td></tr></table>"
    )
    assert parse_numbeo_page(html) == {}


def test_unknown_labels_are_ignored():
    html = numbeo_page([("Toothpaste (1 tube)", "2.00&nbsp;&#36;")])
    assert parse_numbeo_page(html) == {}


def test_first_matching_substring_wins():
    # "1 Bedroom Apartment in City Centre" precedes its "Outside" sibling
    assert match_field("1 Bedroom Apartment in City Centre") == "rent1bedCenter"
    assert match_field("1 Bedroom Apartment Outside of Centre") == "rent1bedOutside"
    assert match_field("Nothing here") is None


def test_label_table_is_ordered_and_unique():
    names = [name for _, name in ITEM_MAPPING]
    assert len(names) == len(set(names))
    assert names[-1] == "avgSalary"
    assert len(ITEM_MAPPING) >= 34


def test_markup_inside_label_is_stripped():
    html = numbeo_page([("Basic Utilities for 85 m<sup>2</sup> Apartment", "210.00&nbsp;&#36;")])
    assert parse_numbeo_page(html) == {"basicUtilities": 210.0}


def test_parse_price_handles_separators():
    assert parse_price("1,234.56 $") == 1234.56
    assert parse_price("abc") is None
    assert parse_price("") is None


def test_insufficient_data_markers():
    assert has_insufficient_data("<p>There are no enough data points for this city</p>")
    assert has_insufficient_data("We don't have enough data for Nowhere")
    assert not has_insufficient_data("<table></table>")


@pytest.mark.parametrize("city_id,name,expected", [
    ("kyiv", "Kyiv", "Kiev"),
    ("san-jose", "San José", "San-Jose-Costa-Rica"),
    ("zurich", "Zürich", "Zurich"),
    ("st-johns", "St. John's", "St-Johns"),
    ("rio", "Rio  de   Janeiro", "Rio-de-Janeiro"),
])
def test_city_slug(city_id, name, expected):
    assert city_slug(city_id, name) == expected


def test_city_url_requests_usd():
    assert city_url("berlin", "Berlin") == (
        "https://www.numbeo.com/cost-of-living/in/Berlin?displayCurrency=USD"
    )
