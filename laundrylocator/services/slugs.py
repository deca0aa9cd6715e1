"""URL slug helpers for listings, cities and states."""
from __future__ import annotations

import re

from sqlalchemy.orm import Session

from laundrylocator.models import Laundromat


def slugify(text: str) -> str:
    value = str(text or "").lower().strip()
    value = value.replace("&", "-and-")
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^\w\-]+", "", value)
    value = re.sub(r"-{2,}", "-", value)
    return value.strip("-")


def generate_slug(name: str, city: str, state: str) -> str:
    """Listing slug in the ``name-city-state`` form."""
    parts = [slugify(part) for part in (name, city, state)]
    slug = "-".join(part for part in parts if part)
    return slug or "laundromat"


def city_slug(city: str, state: str) -> str:
    return generate_slug(city, "", state)


def slug_exists(db: Session, slug: str) -> bool:
    return db.query(Laundromat.id).filter(Laundromat.slug == slug).first() is not None


def unique_slug(db: Session, base_slug: str, reserved: set[str] | None = None) -> str:
    """Append ``-1``, ``-2``... until the slug is unused in the database and in ``reserved``."""
    reserved = reserved or set()
    slug = base_slug
    counter = 1
    while slug in reserved or slug_exists(db, slug):
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug
