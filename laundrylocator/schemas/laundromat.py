from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LaundromatCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2)
    zip: str = ""
    phone: str = ""
    website: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    hours: str = "Not specified"
    services: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    image_url: Optional[str] = None


class LaundromatUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=2)
    zip: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    hours: Optional[str] = None
    services: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    verified: Optional[bool] = None


class PremiumFeaturesUpdate(BaseModel):
    promotional_text: Optional[str] = Field(default=None, max_length=500)
    amenities: Optional[List[str]] = None
    machine_count: Optional[Dict[str, int]] = None
    photos: Optional[List[str]] = None
    special_offers: Optional[List[str]] = None
    payment_options: Optional[List[str]] = None


class ClusterPoint(BaseModel):
    id: Optional[int] = None
    latitude: float
    longitude: float


class ClusterRequest(BaseModel):
    zoom: int = Field(ge=0, le=22)
    points: Optional[List[ClusterPoint]] = None
    state: Optional[str] = None
    city: Optional[str] = None


class SearchResponse(BaseModel):
    total: int
    limit: int
    offset: int
    results: List[Dict[str, Any]]
