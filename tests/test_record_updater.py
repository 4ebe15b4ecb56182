import copy

from record_updater import update_city_metrics
from conftest import TODAY, make_city


def test_end_to_end_without_anchor():
    city = make_city()
    result = update_city_metrics(city, {"avgSalary": 2000, "rent1bedCenter": 900}, today=TODAY)

    metrics = city["metrics"]
    assert metrics["salary"]["average"] == {"local": 2000, "usd": 2000}
    assert metrics["rent"]["oneBedroom"] == {"local": 900, "usd": 900}
    assert "Numbeo" in metrics["sources"]
    assert metrics["updatedAt"] == TODAY.isoformat()
    assert result.updated
    assert result.fields == ["salary.average", "rent.1bed"]


def test_local_side_follows_salary_anchor():
    city = make_city(salary=(2700, 3000))
    update_city_metrics(city, {"avgSalary": 4000, "gasoline": 2.0}, today=TODAY)
    metrics = city["metrics"]
    assert metrics["salary"]["average"] == {"local": 3600, "usd": 4000}
    assert metrics["transport"]["gasoline"] == {"local": 1.8, "usd": 2.0}


def test_missing_or_non_positive_fields_are_never_written():
    city = make_city()
    before = copy.deepcopy(city)
    result = update_city_metrics(city, {"avgSalary": 0, "rent1bedCenter": -3}, today=TODAY)
    assert not result.updated and result.fields == []
    assert city == before


def test_missing_parent_objects_are_created():
    city = make_city()
    data = {"preschool": 500, "internationalSchool": 12000, "gym": 40}
    result = update_city_metrics(city, data, today=TODAY)
    metrics = city["metrics"]
    assert metrics["education"]["preschool"] == {"local": 500, "usd": 500}
    assert metrics["education"]["internationalSchool"]["usd"] == 12000
    assert metrics["lifestyle"]["gymMembership"]["usd"] == 40
    assert result.fields == ["lifestyle.gym", "education.preschool", "education.intlSchool"]


def test_derived_rent_and_property():
    city = make_city()
    data = {"rent1bedCenter": 1000, "rent3bedCenter": 2000,
            "pricePerSqmCenter": 3000, "pricePerSqmOutside": 2000}
    result = update_city_metrics(city, data, today=TODAY)
    metrics = city["metrics"]
    assert metrics["rent"]["twoBedroom"]["usd"] == 1450
    assert metrics["property"]["cityCenter"]["usd"] == 3000
    assert metrics["property"]["buyCityCenter"]["twoBedroom"]["usd"] == 225000
    assert metrics["property"]["buyOutside"]["threeBedroom"]["usd"] == 220000
    assert "property.buyOut1bed" in result.fields
    assert "rent.2bed" in result.fields


def test_groceries_written_only_with_enough_basket_items():
    city = make_city()
    five = {"milk": 1.2, "bread": 2.0, "eggs": 3.5, "chicken": 11.0, "apples": 3.0}
    update_city_metrics(city, five, today=TODAY)
    assert city["metrics"]["food"]["groceries"]["usd"] == 75

    other = make_city()
    update_city_metrics(other, dict(list(five.items())[:4]), today=TODAY)
    assert "food" not in other["metrics"]


def test_sources_keep_order_and_are_not_duplicated():
    city = make_city()
    city["metrics"]["sources"] = ["Statistics Office", "Numbeo"]
    update_city_metrics(city, {"cinema": 12}, today=TODAY)
    assert city["metrics"]["sources"] == ["Statistics Office", "Numbeo"]

    other = make_city()
    other["metrics"]["sources"] = ["Statistics Office"]
    update_city_metrics(other, {"cinema": 12}, today=TODAY)
    assert other["metrics"]["sources"] == ["Statistics Office", "Numbeo"]


def test_applying_the_same_update_twice_is_idempotent(full_page):
    from cost_of_living import parse_numbeo_page

    data = parse_numbeo_page(full_page)
    city = make_city(salary=(2700, 3000))
    update_city_metrics(city, data, today=TODAY)
    once = copy.deepcopy(city)
    update_city_metrics(city, data, today=TODAY)
    assert city == once
