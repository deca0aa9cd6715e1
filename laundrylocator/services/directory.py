"""
Listing store: search, nearby lookup, CRUD with city/state counters,
reviews, favorites and location resolution.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from laundrylocator.core.exceptions import ValidationError
from laundrylocator.core.logger import get_logger
from laundrylocator.models import City, Favorite, Laundromat, Review, State
from laundrylocator.seeds import STATE_ABBR_BY_NAME, US_STATES
from laundrylocator.services import geo
from laundrylocator.services.slugs import city_slug, generate_slug, slugify, unique_slug

logger = get_logger(__name__)

NEARBY_DEFAULT_RADIUS = 10.0
NEARBY_DEFAULT_LIMIT = 20
NEARBY_EXPANSION_FACTOR = 3

UPDATABLE_FIELDS = {
    "name", "address", "city", "state", "zip", "phone", "website", "latitude", "longitude",
    "hours", "services", "amenities", "payment_options", "description", "image_url",
    "verified", "promotional_text", "photos", "special_offers", "machine_count", "owner_id",
}
REQUIRED_FIELDS = ("name", "address", "city", "state")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_laundromat(row: Laundromat, distance: Optional[float] = None) -> Dict[str, Any]:
    data = {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "address": row.address,
        "city": row.city,
        "state": row.state,
        "zip": row.zip,
        "phone": row.phone,
        "website": row.website,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "rating": row.rating or 0.0,
        "review_count": row.review_count or 0,
        "hours": row.hours,
        "services": list(row.services or []),
        "listing_type": row.listing_type or "basic",
        "is_premium": bool(row.is_premium),
        "is_featured": bool(row.is_featured),
        "subscription_active": bool(row.subscription_active),
        "subscription_status": row.subscription_status,
        "subscription_expiry": _iso(row.subscription_expiry),
        "featured_rank": row.featured_rank,
        "promotional_text": row.promotional_text,
        "amenities": list(row.amenities or []),
        "photos": list(row.photos or []),
        "special_offers": list(row.special_offers or []),
        "payment_options": list(row.payment_options or []),
        "machine_count": row.machine_count or {},
        "seo_tags": list(row.seo_tags or []),
        "short_summary": row.short_summary,
        "premium_score": row.premium_score or 0,
        "verified": bool(row.verified),
        "image_url": row.image_url,
        "description": row.description,
        "view_count": row.view_count or 0,
        "created_at": _iso(row.created_at),
    }
    if distance is not None:
        data["distance"] = distance
    return data


def serialize_city(row: City) -> Dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "state": row.state,
        "slug": row.slug,
        "laundry_count": row.laundry_count or 0,
    }


def serialize_state(row: State) -> Dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "abbr": row.abbr,
        "slug": row.slug,
        "laundry_count": row.laundry_count or 0,
    }


# Locations ---------------------------------------------------------------


def normalize_state(value: str) -> str:
    """Return the two-letter abbreviation for a state name or abbreviation when known."""
    cleaned = (value or "").strip()
    if cleaned.upper() in US_STATES:
        return cleaned.upper()
    return STATE_ABBR_BY_NAME.get(cleaned.lower(), cleaned)


def state_name(abbr: str) -> str:
    return US_STATES.get((abbr or "").upper(), abbr)


def ensure_city(db: Session, name: str, state_abbr: str) -> City:
    slug = city_slug(name, state_abbr)
    city = db.query(City).filter(City.slug == slug).first()
    if city is None:
        city = City(name=name, state=state_abbr, slug=slug, laundry_count=0)
        db.add(city)
        db.flush()
    return city


def ensure_state(db: Session, abbr: str) -> State:
    state = db.query(State).filter(State.abbr == abbr).first()
    if state is None:
        name = state_name(abbr)
        state = State(name=name, abbr=abbr, slug=slugify(name), laundry_count=0)
        db.add(state)
        db.flush()
    return state


def adjust_location_counts(db: Session, city_name: str, state_abbr: str, delta: int) -> None:
    city = ensure_city(db, city_name, state_abbr)
    state = ensure_state(db, state_abbr)
    city.laundry_count = max((city.laundry_count or 0) + delta, 0)
    state.laundry_count = max((state.laundry_count or 0) + delta, 0)


def list_states(db: Session) -> List[State]:
    return db.query(State).order_by(State.name).all()


def resolve_state(db: Session, value: str) -> Optional[State]:
    """Match a state by slug, then by two-letter abbreviation, then by full name."""
    needle = (value or "").strip().lower()
    if not needle:
        return None
    state = db.query(State).filter(State.slug == needle).first()
    if state is None and len(needle) == 2:
        state = db.query(State).filter(State.abbr == needle.upper()).first()
    if state is None:
        state = db.query(State).filter(func.lower(State.name) == needle.replace("-", " ")).first()
    return state


def cities_for_state(db: Session, state_abbr: str) -> List[City]:
    return (
        db.query(City)
        .filter(City.state == state_abbr.upper())
        .order_by(City.laundry_count.desc(), City.name)
        .all()
    )


def popular_cities(db: Session, limit: int = 5) -> List[City]:
    return db.query(City).order_by(City.laundry_count.desc(), City.name).limit(limit).all()


def resolve_city(db: Session, slug: str) -> Optional[City]:
    """Match a city by slug, or by a ``city-name-st`` pattern when no slug matches."""
    city = db.query(City).filter(City.slug == slug).first()
    if city is not None or "-" not in slug:
        return city
    parts = slug.split("-")
    abbr = parts[-1].upper()
    if len(abbr) != 2:
        return None
    name = " ".join(parts[:-1]).lower()
    return (
        db.query(City)
        .filter(City.state == abbr, func.lower(City.name) == name)
        .first()
    )


def laundromats_in_city(db: Session, city: City) -> List[Laundromat]:
    state_full = state_name(city.state)
    return (
        _ranked(
            db.query(Laundromat).filter(
                func.lower(Laundromat.city) == city.name.lower(),
                or_(
                    func.lower(Laundromat.state) == city.state.lower(),
                    func.lower(Laundromat.state) == state_full.lower(),
                ),
            )
        ).all()
    )


def laundromats_in_state(db: Session, state: State) -> List[Laundromat]:
    return (
        db.query(Laundromat)
        .filter(or_(Laundromat.state == state.abbr, func.lower(Laundromat.state) == state.name.lower()))
        .all()
    )


# Listings ----------------------------------------------------------------


def _ranked(query):
    tier_order = case(
        (Laundromat.listing_type == "featured", 0),
        (Laundromat.listing_type == "premium", 1),
        else_=2,
    )
    return query.order_by(
        tier_order,
        Laundromat.featured_rank.is_(None),
        Laundromat.featured_rank,
        Laundromat.rating.desc(),
        Laundromat.name,
    )


def search_laundromats(
    db: Session,
    q: str = "",
    open_now: bool = False,
    services: Optional[Iterable[str]] = None,
    min_rating: Optional[float] = None,
    listing_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[int, List[Laundromat]]:
    query = db.query(Laundromat)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Laundromat.name.ilike(like),
                Laundromat.city.ilike(like),
                Laundromat.state.ilike(like),
                Laundromat.zip.ilike(like),
            )
        )
    if open_now:
        query = query.filter(Laundromat.hours.ilike("%24 hour%"))
    if min_rating is not None:
        query = query.filter(Laundromat.rating >= min_rating)
    if listing_type:
        query = query.filter(Laundromat.listing_type == listing_type)

    wanted = [s.strip().lower() for s in services or [] if s and s.strip()]
    if not wanted:
        total = query.count()
        return total, _ranked(query).offset(offset).limit(limit).all()

    rows = [
        row
        for row in _ranked(query).all()
        if all(w in {str(s).lower() for s in (row.services or [])} for w in wanted)
    ]
    return len(rows), rows[offset: offset + limit]


def get_laundromat(db: Session, laundry_id: int) -> Optional[Laundromat]:
    return db.query(Laundromat).filter(Laundromat.id == laundry_id).first()


def get_by_slug(db: Session, slug: str) -> Optional[Laundromat]:
    return db.query(Laundromat).filter(Laundromat.slug == slug).first()


def record_view(db: Session, row: Laundromat) -> None:
    row.view_count = (row.view_count or 0) + 1
    row.last_viewed = datetime.utcnow()
    db.commit()


def featured_laundromats(db: Session, limit: int = 10) -> List[Laundromat]:
    return (
        db.query(Laundromat)
        .filter(Laundromat.is_featured.is_(True))
        .order_by(Laundromat.featured_rank.is_(None), Laundromat.featured_rank, Laundromat.rating.desc())
        .limit(limit)
        .all()
    )


def premium_laundromats(db: Session, limit: int = 20) -> List[Laundromat]:
    return (
        _ranked(
            db.query(Laundromat).filter(
                Laundromat.listing_type.in_(("premium", "featured")),
                Laundromat.subscription_active.is_(True),
            )
        )
        .limit(limit)
        .all()
    )


def next_featured_rank(db: Session) -> int:
    current = db.query(func.max(Laundromat.featured_rank)).filter(Laundromat.is_featured.is_(True)).scalar()
    return (current or 0) + 1


def _clean_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS or k in {"seo_tags", "short_summary", "premium_score"}}
    if "state" in cleaned and cleaned["state"]:
        cleaned["state"] = normalize_state(cleaned["state"])
    for key in ("latitude", "longitude"):
        if key in cleaned and cleaned[key] not in (None, ""):
            cleaned[key] = float(cleaned[key])
        elif key in cleaned:
            cleaned[key] = None
    _check_coordinates(cleaned.get("latitude"), cleaned.get("longitude"))
    return cleaned


def _check_coordinates(lat: Optional[float], lng: Optional[float]) -> None:
    if not geo.valid_coordinates(0.0 if lat is None else lat, 0.0 if lng is None else lng):
        raise ValidationError("Latitude/longitude out of range")


def create_laundromat(
    db: Session,
    data: Dict[str, Any],
    commit: bool = True,
    reserved_slugs: Optional[set[str]] = None,
) -> Laundromat:
    """Insert a listing with a unique slug and bump its city/state counters."""
    for required in REQUIRED_FIELDS:
        if not str(data.get(required) or "").strip():
            raise ValidationError(f"Missing required field: {required}")

    fields = _clean_fields(data)
    base = data.get("slug") or generate_slug(fields["name"], fields["city"], fields["state"])
    slug = unique_slug(db, slugify(base), reserved=reserved_slugs)
    if reserved_slugs is not None:
        reserved_slugs.add(slug)

    row = Laundromat(slug=slug, **fields)
    if data.get("rating") not in (None, ""):
        row.rating = float(data["rating"])
    if data.get("review_count") not in (None, ""):
        row.review_count = int(data["review_count"])
    db.add(row)
    adjust_location_counts(db, row.city, row.state, 1)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def update_laundromat(db: Session, row: Laundromat, data: Dict[str, Any]) -> Laundromat:
    for required in REQUIRED_FIELDS:
        if required in data and not str(data[required] or "").strip():
            raise ValidationError(f"{required} cannot be empty")
    fields = _clean_fields(data)
    _check_coordinates(fields.get("latitude", row.latitude), fields.get("longitude", row.longitude))
    old_city, old_state = row.city, row.state
    for key, value in fields.items():
        setattr(row, key, value)
    if (row.city, row.state) != (old_city, old_state):
        adjust_location_counts(db, old_city, old_state, -1)
        adjust_location_counts(db, row.city, row.state, 1)
    db.commit()
    db.refresh(row)
    return row


def delete_laundromat(db: Session, row: Laundromat) -> None:
    adjust_location_counts(db, row.city, row.state, -1)
    db.delete(row)
    db.commit()


def nearby_laundromats(
    db: Session,
    lat: float,
    lng: float,
    radius: float = NEARBY_DEFAULT_RADIUS,
    limit: int = NEARBY_DEFAULT_LIMIT,
) -> List[Tuple[Laundromat, float]]:
    """
    Listings within ``radius`` miles ordered by distance.

    An empty result retries at three times the radius, and failing that returns the
    closest ``limit`` listings regardless of distance.
    """
    if not geo.valid_coordinates(lat, lng):
        raise ValidationError("Invalid coordinates")
    if radius <= 0:
        raise ValidationError("Radius must be positive")

    for search_radius in (radius, radius * NEARBY_EXPANSION_FACTOR):
        min_lat, max_lat, min_lng, max_lng = geo.bounding_box(lat, lng, search_radius)
        candidates = (
            db.query(Laundromat)
            .filter(
                Laundromat.latitude.isnot(None),
                Laundromat.longitude.isnot(None),
                Laundromat.latitude.between(min_lat, max_lat),
                Laundromat.longitude.between(min_lng, max_lng),
            )
            .all()
        )
        matches = _with_distance(candidates, lat, lng, max_distance=search_radius)
        if matches:
            logger.info(
                "Found %s laundromats within %s miles of (%s, %s)", len(matches), search_radius, lat, lng
            )
            return matches[:limit]

    located = (
        db.query(Laundromat)
        .filter(Laundromat.latitude.isnot(None), Laundromat.longitude.isnot(None))
        .all()
    )
    logger.info("No laundromats near (%s, %s); falling back to closest overall", lat, lng)
    return _with_distance(located, lat, lng)[:limit]


def _with_distance(
    rows: Iterable[Laundromat], lat: float, lng: float, max_distance: Optional[float] = None
) -> List[Tuple[Laundromat, float]]:
    measured = []
    for row in rows:
        distance = geo.haversine_miles(lat, lng, row.latitude, row.longitude)
        if max_distance is None or distance <= max_distance:
            measured.append((row, round(distance, 1)))
    measured.sort(key=lambda item: item[1])
    return measured


# Reviews and favorites ---------------------------------------------------


def list_reviews(db: Session, laundry_id: int) -> List[Review]:
    return db.query(Review).filter(Review.laundry_id == laundry_id).order_by(Review.created_at.desc()).all()


def add_review(db: Session, laundry: Laundromat, user_id: int, rating: int, comment: Optional[str]) -> Review:
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    review = Review(laundry_id=laundry.id, user_id=user_id, rating=rating, comment=comment)
    db.add(review)
    db.flush()
    count, average = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(Review.laundry_id == laundry.id)
        .one()
    )
    laundry.review_count = int(count or 0)
    laundry.rating = round(float(average or 0), 1)
    db.commit()
    db.refresh(review)
    return review


def serialize_review(row: Review) -> Dict[str, Any]:
    return {
        "id": row.id,
        "laundry_id": row.laundry_id,
        "user_id": row.user_id,
        "rating": row.rating,
        "comment": row.comment,
        "created_at": _iso(row.created_at),
    }


def list_favorites(db: Session, user_id: int) -> List[Laundromat]:
    return (
        db.query(Laundromat)
        .join(Favorite, Favorite.laundry_id == Laundromat.id)
        .filter(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc())
        .all()
    )


def add_favorite(db: Session, user_id: int, laundry_id: int) -> Favorite:
    existing = (
        db.query(Favorite)
        .filter(Favorite.user_id == user_id, Favorite.laundry_id == laundry_id)
        .first()
    )
    if existing:
        return existing
    favorite = Favorite(user_id=user_id, laundry_id=laundry_id)
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    return favorite


def remove_favorite(db: Session, user_id: int, laundry_id: int) -> bool:
    deleted = (
        db.query(Favorite)
        .filter(Favorite.user_id == user_id, Favorite.laundry_id == laundry_id)
        .delete()
    )
    db.commit()
    return bool(deleted)
