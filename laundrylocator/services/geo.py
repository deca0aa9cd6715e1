"""Distance math, marker clustering and Google Maps image URLs."""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

EARTH_RADIUS_MILES = 3958.8

STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
STREET_VIEW_URL = "https://maps.googleapis.com/maps/api/streetview"

CLUSTER_GRID_SIZE = 0.01
CLUSTER_MAX_ZOOM = 14
CLUSTER_THRESHOLD = 30


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in miles rounded to one decimal."""
    return round(haversine_miles(lat1, lng1, lat2, lng2), 1)


def bounding_box(lat: float, lng: float, radius_miles: float) -> Tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lng, max_lng) enclosing a circle, used to pre-filter rows in SQL."""
    lat_delta = radius_miles / 69.0
    cos_lat = max(math.cos(math.radians(lat)), 0.01)
    lng_delta = radius_miles / (69.0 * cos_lat)
    return lat - lat_delta, lat + lat_delta, lng - lng_delta, lng + lng_delta


def valid_coordinates(lat: Any, lng: Any) -> bool:
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat_f) or math.isnan(lng_f):
        return False
    return -90.0 <= lat_f <= 90.0 and -180.0 <= lng_f <= 180.0


def cluster_markers(
    points: Iterable[Dict[str, Any]],
    zoom: int,
    grid_size: float = CLUSTER_GRID_SIZE,
    max_zoom: int = CLUSTER_MAX_ZOOM,
    threshold: int = CLUSTER_THRESHOLD,
) -> Dict[str, Any]:
    """
    Group map points into grid cells.

    Each point needs ``latitude`` and ``longitude`` keys. Clustering only kicks in
    below ``max_zoom`` when there are more than ``threshold`` points; otherwise the
    points are returned individually under ``markers``.
    """
    located = [p for p in points if valid_coordinates(p.get("latitude"), p.get("longitude"))]
    if zoom >= max_zoom or len(located) <= threshold:
        return {"clustered": False, "markers": located, "clusters": []}

    cells: Dict[str, Dict[str, Any]] = {}
    for point in located:
        lat = float(point["latitude"])
        lng = float(point["longitude"])
        cell_lat = math.floor(lat / grid_size) * grid_size
        cell_lng = math.floor(lng / grid_size) * grid_size
        key = f"{cell_lat:.4f},{cell_lng:.4f}"
        cell = cells.setdefault(
            key,
            {
                "position": {
                    "lat": round(cell_lat + grid_size / 2, 6),
                    "lng": round(cell_lng + grid_size / 2, 6),
                },
                "count": 0,
                "ids": [],
            },
        )
        cell["count"] += 1
        if point.get("id") is not None:
            cell["ids"].append(point["id"])

    return {"clustered": True, "markers": [], "clusters": list(cells.values())}


def static_map_url(
    lat: float,
    lng: float,
    api_key: str,
    zoom: int = 14,
    width: int = 600,
    height: int = 400,
    markers: Optional[Sequence[Tuple[float, float]]] = None,
) -> str:
    params: List[Tuple[str, str]] = [
        ("center", f"{lat},{lng}"),
        ("zoom", str(zoom)),
        ("size", f"{width}x{height}"),
        ("scale", "2"),
    ]
    for m_lat, m_lng in markers or [(lat, lng)]:
        params.append(("markers", f"color:red|{m_lat},{m_lng}"))
    params.append(("key", api_key))
    return f"{STATIC_MAP_URL}?{urlencode(params)}"


def street_view_url(lat: float, lng: float, api_key: str, width: int = 600, height: int = 400) -> str:
    params = {"size": f"{width}x{height}", "location": f"{lat},{lng}", "key": api_key}
    return f"{STREET_VIEW_URL}?{urlencode(params)}"
