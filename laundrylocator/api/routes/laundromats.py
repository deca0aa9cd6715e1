"""
Laundromat API Routes
Search, nearby lookup, map clusters and listing management
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from laundrylocator.api.dependencies import get_current_user, http_error, require_admin
from laundrylocator.core.exceptions import AppError
from laundrylocator.core.logger import get_logger
from laundrylocator.database import get_db
from laundrylocator.models import Laundromat, User
from laundrylocator.schemas.laundromat import (
    ClusterRequest,
    LaundromatCreate,
    LaundromatUpdate,
    PremiumFeaturesUpdate,
    SearchResponse,
)
from laundrylocator.services import directory, geo, premium, seo
from laundrylocator.services.directory import serialize_laundromat

router = APIRouter()
logger = get_logger(__name__)


def _get_or_404(db: Session, laundry_id: int) -> Laundromat:
    laundromat = directory.get_laundromat(db, laundry_id)
    if laundromat is None:
        raise HTTPException(status_code=404, detail="Laundromat not found")
    return laundromat


@router.get("", response_model=SearchResponse)
async def search_laundromats(
    q: str = "",
    open_now: bool = False,
    services: Optional[str] = Query(default=None, description="Comma-separated services, all required"),
    min_rating: Optional[float] = Query(default=None, ge=0, le=5),
    listing_type: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Search listings, premium and featured first
    """
    wanted = [s for s in (services or "").split(",") if s.strip()]
    total, rows = directory.search_laundromats(
        db,
        q=q,
        open_now=open_now,
        services=wanted,
        min_rating=min_rating,
        listing_type=listing_type,
        limit=limit,
        offset=offset,
    )
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "results": [serialize_laundromat(row) for row in rows],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_laundromat(
    payload: LaundromatCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> Dict[str, Any]:
    try:
        row = directory.create_laundromat(db, payload.model_dump())
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return serialize_laundromat(row)


@router.get("/nearby")
async def nearby_laundromats(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(default=directory.NEARBY_DEFAULT_RADIUS, gt=0, le=500),
    limit: int = Query(default=directory.NEARBY_DEFAULT_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """
    Listings near a point with distance in miles
    """
    try:
        matches = directory.nearby_laundromats(db, lat, lng, radius=radius, limit=limit)
    except AppError as exc:
        raise http_error(exc) from exc
    return [serialize_laundromat(row, distance=distance) for row, distance in matches]


@router.get("/featured")
async def featured_laundromats(
    limit: int = Query(default=10, ge=1, le=50), db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    return [serialize_laundromat(row) for row in directory.featured_laundromats(db, limit=limit)]


@router.get("/premium")
async def premium_laundromats(
    limit: int = Query(default=20, ge=1, le=100), db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    return [serialize_laundromat(row) for row in directory.premium_laundromats(db, limit=limit)]


@router.post("/cluster")
async def cluster_laundromats(payload: ClusterRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Group map markers into grid clusters for the given zoom level
    """
    if payload.points is not None:
        points = [p.model_dump() for p in payload.points]
    else:
        query = db.query(Laundromat.id, Laundromat.latitude, Laundromat.longitude).filter(
            Laundromat.latitude.isnot(None), Laundromat.longitude.isnot(None)
        )
        if payload.state:
            query = query.filter(Laundromat.state == directory.normalize_state(payload.state))
        if payload.city:
            query = query.filter(Laundromat.city == payload.city)
        points = [{"id": i, "latitude": la, "longitude": lo} for i, la, lo in query.all()]
    return geo.cluster_markers(points, zoom=payload.zoom)


@router.get("/id/{laundry_id}")
async def get_laundromat_by_id(laundry_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return serialize_laundromat(_get_or_404(db, laundry_id))


@router.patch("/id/{laundry_id}")
async def update_laundromat(
    laundry_id: int,
    payload: LaundromatUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> Dict[str, Any]:
    row = _get_or_404(db, laundry_id)
    try:
        row = directory.update_laundromat(db, row, payload.model_dump(exclude_unset=True))
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return serialize_laundromat(row)


@router.delete("/id/{laundry_id}")
async def delete_laundromat(
    laundry_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> Dict[str, Any]:
    row = _get_or_404(db, laundry_id)
    directory.delete_laundromat(db, row)
    return {"success": True, "id": laundry_id}


@router.get("/{laundry_id:int}/reviews")
async def list_reviews(laundry_id: int, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    _get_or_404(db, laundry_id)
    return [directory.serialize_review(r) for r in directory.list_reviews(db, laundry_id)]


@router.get("/{laundry_id:int}/premium-features")
async def get_premium_features(laundry_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return premium.premium_features(_get_or_404(db, laundry_id))


@router.put("/{laundry_id:int}/premium-features")
async def update_premium_features(
    laundry_id: int,
    payload: PremiumFeaturesUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    laundromat = _get_or_404(db, laundry_id)
    if user.role != "admin" and laundromat.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Only the listing owner can edit premium features")
    try:
        laundromat = premium.update_premium_features(db, laundromat, payload.model_dump(exclude_unset=True))
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return premium.premium_features(laundromat)


@router.get("/{slug}/schema")
async def laundromat_schema(slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    schema.org JSON-LD for a listing page
    """
    laundromat = directory.get_by_slug(db, slug)
    if laundromat is None:
        raise HTTPException(status_code=404, detail="Laundromat not found")
    reviews = directory.list_reviews(db, laundromat.id)
    return seo.laundromat_schema(laundromat, reviews)


@router.get("/{slug}")
async def get_laundromat(slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Listing detail by slug; counts a page view
    """
    laundromat = directory.get_by_slug(db, slug)
    if laundromat is None:
        raise HTTPException(status_code=404, detail="Laundromat not found")
    directory.record_view(db, laundromat)
    data = serialize_laundromat(laundromat)
    data["features"] = premium.get_tier_features(laundromat.listing_type)
    return data
