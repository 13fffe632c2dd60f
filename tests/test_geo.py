import math

import pytest

from curator.core import geo
from curator.core.models import CoordinatePair


def test_flat_fields_take_priority():
    metadata = {"lat": "64.1265", "lng": -21.8174, "location": {"lat": 1, "lng": 2}}
    assert geo.extract_coordinates(metadata) == CoordinatePair(lat=64.1265, lng=-21.8174)


def test_nested_location():
    assert geo.extract_coordinates({"location": {"lat": 35.6586, "lng": "139.7454"}}) == CoordinatePair(
        lat=35.6586, lng=139.7454
    )


def test_invalid_flat_fields_fall_through_to_location():
    metadata = {"lat": "north", "lng": 10, "location": {"lat": 1.5, "lng": 2.5}}
    assert geo.extract_coordinates(metadata) == CoordinatePair(lat=1.5, lng=2.5)


def test_coordinates_array_in_listed_order():
    assert geo.extract_coordinates({"coordinates": [64.13, -21.9]}) == CoordinatePair(lat=64.13, lng=-21.9)


def test_coordinates_array_swapped_when_only_swap_is_valid():
    assert geo.extract_coordinates({"coordinates": [139.7454, 35.6586]}) == CoordinatePair(
        lat=35.6586, lng=139.7454
    )


def test_coordinates_array_listed_order_wins_when_both_orders_valid():
    assert geo.extract_coordinates({"coordinates": [-21.9, 64.13]}) == CoordinatePair(lat=-21.9, lng=64.13)


def test_coordinates_array_out_of_range_both_ways():
    assert geo.extract_coordinates({"coordinates": [200, 300]}) is None


@pytest.mark.parametrize(
    "junk",
    [
        None,
        [],
        [1, 2],
        "64.13,-21.9",
        42,
        {},
        {"lat": None, "lng": None},
        {"lat": True, "lng": False},
        {"lat": float("nan"), "lng": 1},
        {"lat": 95, "lng": 10},
        {"location": "somewhere"},
        {"location": {"lat": {"deep": [1, 2]}, "lng": []}},
        {"coordinates": [1]},
        {"coordinates": ["a", "b"]},
        {"coordinates": {"lat": 1, "lng": 2}},
        {"a": {"b": {"c": {"lat": 1, "lng": 2}}}},
    ],
)
def test_extraction_is_total(junk):
    assert geo.extract_coordinates(junk) is None


def test_haversine_known_distance():
    # One degree of latitude along a meridian.
    expected = geo.EARTH_RADIUS_METERS * math.pi / 180
    assert geo.haversine_meters(0, 0, 1, 0) == pytest.approx(expected)
    assert geo.haversine_meters(64.1, -21.9, 64.1, -21.9) == 0


def test_coordinate_key_rounds_to_six_decimals():
    assert geo.coordinate_key(35.65861234, 139.7454) == "35.658612_139.745400"
