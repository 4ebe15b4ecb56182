import json
from datetime import date

import pytest
import requests

from inflation import extract_series, fetch_imf_inflation, merge_inflation, update_inflation

TODAY = date(2026, 3, 14)


def imf_payload(code, series):
    return {"values": {"PCPIPCH": {code: series}}}


def test_extract_series_keeps_plausible_years_and_rounds():
    payload = imf_payload("DEU", {"2019": 1.4, "2020": 0.372, "2025": 2.156, "2030": 2.0, "2031": 2.0})
    assert extract_series(payload, "DEU") == {"2020": 0.37, "2025": 2.16, "2030": 2.0}


def test_extract_series_without_country_returns_none():
    assert extract_series({"values": {"PCPIPCH": {}}}, "DEU") is None


def test_fetch_skips_unmapped_codes_and_swallows_failures():
    requested = []

    def fake_fetch(url):
        requested.append(url)
        if url.endswith("/FRA"):
            raise requests.HTTPError("500 Server Error")
        if url.endswith("/ESP"):
            return {"unexpected": True}
        return imf_payload("DEU", {"2024": 2.4, "2025": 2.0, "2026": 1.9})

    result = fetch_imf_inflation(["DE", "FR", "ES", "XX", "DE"], fetch=fake_fetch)
    assert result == {"DE": {"2024": 2.4, "2025": 2.0, "2026": 1.9}}
    assert len(requested) == 3
    assert not any(url.endswith("/XX") for url in requested)


def test_merge_never_inserts_new_countries():
    document = {"lastUpdated": "2025-01-01", "source": "IMF",
                "countries": {"DE": {"name": "Germany"}}}
    updated = merge_inflation(document, {"ZZ": {"2025": 5.0}, "DE": {"2025": 2.0}}, today=TODAY)
    assert updated == 1
    assert set(document["countries"]) == {"DE"}
    assert document["lastUpdated"] == TODAY.isoformat()
    assert document["source"] == "IMF"


def test_merge_copies_years_and_derives_property_growth():
    document = {"countries": {"DE": {"name": "Germany", "notes": "keep"}}}
    merge_inflation(document, {"DE": {"2024": 2.4, "2025": 2.1, "2026": 1.8, "2027": 2.0}})
    entry = document["countries"]["DE"]
    assert entry["inflation2025"] == 2.1
    assert entry["inflation2026"] == 1.8
    assert entry["inflation2027"] == 2.0
    assert entry["propertyGrowth2026"] == pytest.approx(round(2.1 * 1.3, 2))
    assert entry["notes"] == "keep"


def test_merge_skips_property_growth_when_a_year_is_missing():
    document = {"DE": {"name": "Germany", "propertyGrowth2026": 3.3}}
    merge_inflation(document, {"DE": {"2025": 2.1, "2026": 1.8}})
    assert document["DE"]["propertyGrowth2026"] == 3.3
    assert document["DE"]["inflation2025"] == 2.1
    assert "lastUpdated" not in document


def test_update_inflation_dry_run_leaves_file_untouched(tmp_path):
    path = tmp_path / "inflation.json"
    path.write_text(json.dumps({"countries": {"DE": {"name": "Germany"}}}), encoding="utf-8")
    before = path.read_bytes()

    fake = lambda url: imf_payload("DEU", {"2025": 2.0})
    assert update_inflation(path, ["DE"], dry_run=True, fetch=fake, today=TODAY) == 1
    assert path.read_bytes() == before

    assert update_inflation(path, ["DE"], fetch=fake, today=TODAY) == 1
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["countries"]["DE"]["inflation2025"] == 2.0
    assert path.read_text(encoding="utf-8").endswith("\n")
