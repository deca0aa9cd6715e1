"""
Laundry Tips API Routes
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from laundrylocator.database import get_db
from laundrylocator.services import tips

router = APIRouter()


@router.get("")
async def list_tips(category: Optional[str] = None, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return [tips.serialize_tip(t) for t in tips.list_tips(db, category)]


@router.get("/related/{tip_id}")
async def related_tips(tip_id: int, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return [tips.serialize_tip(t) for t in tips.related_tips(db, tip_id)]


@router.get("/{slug}")
async def get_tip(slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    tip = tips.get_tip(db, slug)
    if tip is None:
        raise HTTPException(status_code=404, detail="Tip not found")
    return tips.serialize_tip(tip)
