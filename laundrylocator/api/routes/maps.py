"""
Maps API Routes
Geocoding and static map image URLs
"""
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query

from laundrylocator.api.dependencies import http_error
from laundrylocator.config import settings
from laundrylocator.core.exceptions import IntegrationError
from laundrylocator.integrations import GoogleMapsClient
from laundrylocator.services import geo

router = APIRouter()


def _api_key() -> str:
    if not settings.google_maps_api_key or not settings.google_maps_api_key.get_secret_value():
        raise HTTPException(status_code=400, detail="Google Maps API key is not configured")
    return settings.google_maps_api_key.get_secret_value()


@router.get("/geocode")
async def geocode(address: str = Query(..., min_length=3)) -> Dict[str, Any]:
    client = GoogleMapsClient(api_key=_api_key())
    try:
        result = await client.geocode(address)
    except IntegrationError as exc:
        raise http_error(exc) from exc
    finally:
        await client.close()
    if result is None:
        raise HTTPException(status_code=404, detail="Address not found")
    return result.as_dict()


@router.get("/static")
async def static_map(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    zoom: int = Query(default=14, ge=1, le=21),
    width: int = Query(default=600, ge=50, le=640),
    height: int = Query(default=400, ge=50, le=640),
) -> Dict[str, str]:
    key = _api_key()
    return {
        "static_map_url": geo.static_map_url(lat, lng, key, zoom=zoom, width=width, height=height),
        "street_view_url": geo.street_view_url(lat, lng, key, width=width, height=height),
    }
