"""External integration adapters."""

from .google_maps import GeocodeResult, GoogleMapsClient

__all__ = [
    "GeocodeResult",
    "GoogleMapsClient",
]
