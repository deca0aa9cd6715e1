"""Laundry tips content."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from laundrylocator.models import LaundryTip


def serialize_tip(row: LaundryTip) -> Dict[str, Any]:
    return {
        "id": row.id,
        "title": row.title,
        "slug": row.slug,
        "description": row.description,
        "content": row.content,
        "category": row.category,
        "image_url": row.image_url,
        "tags": list(row.tags or []),
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def list_tips(db: Session, category: Optional[str] = None) -> List[LaundryTip]:
    query = db.query(LaundryTip)
    if category:
        query = query.filter(LaundryTip.category == category)
    return query.order_by(LaundryTip.id).all()


def get_tip(db: Session, slug: str) -> Optional[LaundryTip]:
    return db.query(LaundryTip).filter(LaundryTip.slug == slug).first()


def related_tips(db: Session, tip_id: int, limit: int = 3) -> List[LaundryTip]:
    """Tips from the same category first, then the rest, never the tip itself."""
    tip = db.query(LaundryTip).filter(LaundryTip.id == tip_id).first()
    if tip is None:
        return []
    others = db.query(LaundryTip).filter(LaundryTip.id != tip_id).order_by(LaundryTip.id).all()
    others.sort(key=lambda other: other.category != tip.category)
    return others[:limit]
