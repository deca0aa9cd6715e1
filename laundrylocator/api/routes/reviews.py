"""
Review and Favorite API Routes
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from laundrylocator.api.dependencies import get_current_user, http_error
from laundrylocator.core.exceptions import AppError
from laundrylocator.database import get_db
from laundrylocator.models import User
from laundrylocator.schemas.review import FavoriteCreate, ReviewCreate
from laundrylocator.services import directory

router = APIRouter()


@router.post("/reviews", status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    laundromat = directory.get_laundromat(db, payload.laundry_id)
    if laundromat is None:
        raise HTTPException(status_code=404, detail="Laundromat not found")
    try:
        review = directory.add_review(db, laundromat, user.id, payload.rating, payload.comment)
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return {
        "review": directory.serialize_review(review),
        "rating": laundromat.rating,
        "review_count": laundromat.review_count,
    }


@router.get("/favorites")
async def list_favorites(
    db: Session = Depends(get_db), user: User = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return [directory.serialize_laundromat(row) for row in directory.list_favorites(db, user.id)]


@router.post("/favorites", status_code=status.HTTP_201_CREATED)
async def add_favorite(
    payload: FavoriteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    if directory.get_laundromat(db, payload.laundry_id) is None:
        raise HTTPException(status_code=404, detail="Laundromat not found")
    favorite = directory.add_favorite(db, user.id, payload.laundry_id)
    return {"id": favorite.id, "laundry_id": favorite.laundry_id}


@router.delete("/favorites/{laundry_id}")
async def remove_favorite(
    laundry_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    if not directory.remove_favorite(db, user.id, laundry_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"success": True}
