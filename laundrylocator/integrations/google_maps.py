from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from laundrylocator.config import settings
from laundrylocator.core.exceptions import IntegrationError
from laundrylocator.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "formatted_address": self.formatted_address,
        }


class GoogleMapsClient:
    """Google Geocoding API client."""

    BASE_URL = "https://maps.googleapis.com/maps/api"

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        key = api_key or (
            settings.google_maps_api_key.get_secret_value() if settings.google_maps_api_key else None
        )
        if not key:
            raise ValueError("GOOGLE_MAPS_API_KEY is not configured")
        self.api_key = key
        self.client = httpx.AsyncClient(base_url=self.BASE_URL, timeout=15.0, transport=transport)

    async def geocode(self, address: str) -> Optional[GeocodeResult]:
        """First geocoding match for ``address``, or None when Google finds nothing."""
        try:
            response = await self.client.get(
                "/geocode/json",
                params={"address": address, "components": "country:US", "key": self.api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Geocoding request failed for %r: %s", address, exc)
            raise IntegrationError(f"Geocoding request failed: {exc}") from exc

        data = response.json()
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise IntegrationError(f"Geocoding failed: {status} {data.get('error_message', '')}".strip())
        if not data.get("results"):
            return None

        first = data["results"][0]
        location = (first.get("geometry") or {}).get("location") or {}
        return GeocodeResult(
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            formatted_address=first.get("formatted_address", address),
        )

    async def close(self) -> None:
        await self.client.aclose()
