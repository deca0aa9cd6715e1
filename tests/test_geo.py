from urllib.parse import parse_qs, urlparse

import pytest

from laundrylocator.services.geo import (
    bounding_box,
    calculate_distance,
    cluster_markers,
    haversine_miles,
    static_map_url,
    street_view_url,
    valid_coordinates,
)


def test_haversine_between_new_york_and_los_angeles():
    distance = haversine_miles(40.7128, -74.0060, 34.0522, -118.2437)
    assert 2440 < distance < 2452


def test_calculate_distance_rounds_to_tenth():
    assert calculate_distance(30.2672, -97.7431, 30.2672, -97.7431) == 0.0
    assert calculate_distance(30.0, -97.0, 30.1, -97.0) == pytest.approx(6.9, abs=0.05)


def test_bounding_box_contains_centre():
    min_lat, max_lat, min_lng, max_lng = bounding_box(30.0, -97.0, 10)
    assert min_lat < 30.0 < max_lat
    assert min_lng < -97.0 < max_lng


def test_valid_coordinates():
    assert valid_coordinates("30.1", "-97.2")
    assert not valid_coordinates(None, 10)
    assert not valid_coordinates(91, 0)
    assert not valid_coordinates("abc", 0)


def _points(count):
    return [
        {"id": i, "latitude": 40.001 + i * 0.0001, "longitude": -74.005}
        for i in range(count)
    ]


def test_cluster_markers_groups_points_in_one_cell():
    result = cluster_markers(_points(31), zoom=10)
    assert result["clustered"] is True
    assert result["markers"] == []
    assert len(result["clusters"]) == 1
    cluster = result["clusters"][0]
    assert cluster["count"] == 31
    assert cluster["ids"] == list(range(31))
    assert cluster["position"]["lat"] == pytest.approx(40.005)
    assert cluster["position"]["lng"] == pytest.approx(-74.005)


def test_cluster_markers_returns_individual_markers_when_zoomed_in_or_sparse():
    zoomed = cluster_markers(_points(31), zoom=14)
    assert zoomed["clustered"] is False
    assert len(zoomed["markers"]) == 31

    sparse = cluster_markers(_points(30), zoom=5)
    assert sparse["clustered"] is False
    assert len(sparse["markers"]) == 30


def test_cluster_markers_skips_points_without_coordinates():
    points = _points(2) + [{"id": 99, "latitude": None, "longitude": None}]
    result = cluster_markers(points, zoom=5)
    assert [p["id"] for p in result["markers"]] == [0, 1]


def test_static_map_and_street_view_urls():
    url = static_map_url(40.0, -74.0, "abc", zoom=12, width=300, height=200)
    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://maps.googleapis.com/maps/api/staticmap?")
    assert query["center"] == ["40.0,-74.0"]
    assert query["zoom"] == ["12"]
    assert query["size"] == ["300x200"]
    assert query["markers"] == ["color:red|40.0,-74.0"]
    assert query["key"] == ["abc"]

    street = parse_qs(urlparse(street_view_url(40.0, -74.0, "abc")).query)
    assert street["location"] == ["40.0,-74.0"]
    assert street["size"] == ["600x400"]
