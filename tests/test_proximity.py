import math

import pytest

from core.geo import EARTH_RADIUS_MILES, great_circle_miles
from core.proximity import MAX_OFFERS, find_offers

pytestmark = pytest.mark.asyncio

USER_LAT, USER_LNG = 37.0, -122.0
MILES_PER_DEGREE_LAT = EARTH_RADIUS_MILES * math.pi / 180


def _lat_at(miles: float) -> float:
    """Latitude due north of the user at the given distance."""
    return USER_LAT + miles / MILES_PER_DEGREE_LAT


async def test_only_in_stock_store_is_returned(session, add_stock):
    await add_stock(store_id="A", product_id="P1", quantity=5, lat=37.0, lng=-122.0)
    await add_stock(store_id="B", product_id="P1", quantity=0, lat=37.5, lng=-122.5)

    offers = await find_offers(session, "Widget", USER_LAT, USER_LNG, 10)
    assert [o.store_id for o in offers] == ["A"]

    # Out-of-stock rows stay excluded even when they are in range.
    offers = await find_offers(session, "Widget", USER_LAT, USER_LNG, 100)
    assert [o.store_id for o in offers] == ["A"]


async def test_offer_fields(session, add_stock):
    await add_stock(
        store_id="A",
        product_id="P1",
        quantity=5,
        lat=_lat_at(1.234),
        store_name="Corner Store",
        product_name="Blue Widget",
        price="12.50",
    )

    [offer] = await find_offers(session, "widget", USER_LAT, USER_LNG)
    assert offer.store_id == "A"
    assert offer.venue_id == "A"
    assert offer.store_name == "Corner Store"
    assert offer.product_id == "P1"
    assert offer.product_name == "Blue Widget"
    assert offer.price == 12.5
    assert offer.available_quantity == 5
    assert offer.distance_miles == 1.23
    assert offer.formatted_pickup_address == "1 Main St, Unit A"


async def test_sorted_closest_first_and_inside_radius(session, add_stock):
    for store_id, miles in [("far", 8), ("near", 2), ("mid", 5), ("outside", 12)]:
        await add_stock(store_id=store_id, product_id="P1", quantity=1, lat=_lat_at(miles))

    offers = await find_offers(session, "Widget", USER_LAT, USER_LNG, 10)

    assert [o.store_id for o in offers] == ["near", "mid", "far"]
    distances = [o.distance_miles for o in offers]
    assert distances == sorted(distances)
    assert all(d < 10 for d in distances)


async def test_store_exactly_on_radius_is_excluded(session, add_stock):
    lat = 37.1
    await add_stock(store_id="edge", product_id="P1", quantity=1, lat=lat)
    radius = great_circle_miles(USER_LAT, USER_LNG, lat, USER_LNG)

    assert await find_offers(session, "Widget", USER_LAT, USER_LNG, radius) == []
    assert len(await find_offers(session, "Widget", USER_LAT, USER_LNG, radius + 0.001)) == 1


async def test_query_is_case_insensitive_substring(session, add_stock):
    await add_stock(store_id="A", product_id="P1", quantity=1, product_name="Deluxe WIDGET Pro")
    await add_stock(store_id="A", product_id="P2", quantity=1, product_name="Gadget")

    offers = await find_offers(session, "widget", USER_LAT, USER_LNG)
    assert [o.product_id for o in offers] == ["P1"]


async def test_like_wildcards_in_query_are_literal(session, add_stock):
    await add_stock(store_id="A", product_id="P1", quantity=1, product_name="100% Cotton Tee")
    await add_stock(store_id="A", product_id="P2", quantity=1, product_name="Widget")

    offers = await find_offers(session, "%", USER_LAT, USER_LNG)
    assert [o.product_id for o in offers] == ["P1"]

    assert await find_offers(session, "W_dget", USER_LAT, USER_LNG) == []


async def test_at_most_ten_offers(session, add_stock):
    for i in range(MAX_OFFERS + 3):
        await add_stock(store_id=f"S{i:02d}", product_id="P1", quantity=1, lat=_lat_at(0.5 + i * 0.5))

    offers = await find_offers(session, "Widget", USER_LAT, USER_LNG, 50)

    assert len(offers) == MAX_OFFERS
    assert [o.store_id for o in offers] == [f"S{i:02d}" for i in range(MAX_OFFERS)]


async def test_no_match_returns_empty(session, add_stock):
    await add_stock(store_id="A", product_id="P1", quantity=3)
    assert await find_offers(session, "Gizmo", USER_LAT, USER_LNG) == []


async def test_equal_distances_keep_store_order(session, add_stock):
    for store_id in ["B", "A", "C"]:
        await add_stock(store_id=store_id, product_id="P1", quantity=1, lat=_lat_at(3))

    offers = await find_offers(session, "Widget", USER_LAT, USER_LNG)
    assert [o.store_id for o in offers] == ["A", "B", "C"]


async def test_rounding_can_report_the_radius_itself(session, add_stock):
    await add_stock(store_id="edge", product_id="P1", quantity=1, lat=_lat_at(9.997))

    [offer] = await find_offers(session, "Widget", USER_LAT, USER_LNG, 10)

    # Filtering uses the exact distance; only the reported value is rounded.
    assert great_circle_miles(USER_LAT, USER_LNG, _lat_at(9.997), USER_LNG) < 10
    assert offer.distance_miles == 10.0
