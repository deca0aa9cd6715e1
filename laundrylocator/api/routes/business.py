"""
Business Owner API Routes
Listing claims and the admin notification queue
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from laundrylocator.api.dependencies import get_current_user, http_error, require_admin
from laundrylocator.core.exceptions import AppError
from laundrylocator.database import get_db
from laundrylocator.models import User
from laundrylocator.schemas.business import ClaimRequest, NotificationStatusUpdate
from laundrylocator.services import business
from laundrylocator.services.directory import serialize_laundromat

router = APIRouter()


@router.post("/business/claim", status_code=status.HTTP_201_CREATED)
async def claim_listing(
    payload: ClaimRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        notification = business.claim_listing(
            db,
            user,
            payload.laundry_id,
            email=payload.email,
            phone=payload.phone,
            verification_method=payload.verification_method,
            profile=payload.profile,
        )
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return {"success": True, "notification": business.serialize_notification(notification)}


@router.get("/business/mine")
async def my_listings(
    db: Session = Depends(get_db), user: User = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return [serialize_laundromat(row) for row in business.owned_laundromats(db, user.id)]


@router.get("/admin/notifications")
async def list_notifications(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> List[Dict[str, Any]]:
    return [business.serialize_notification(n) for n in business.list_notifications(db, status_filter)]


@router.patch("/admin/notifications/{notification_id}")
async def update_notification(
    notification_id: int,
    payload: NotificationStatusUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> Dict[str, Any]:
    try:
        notification = business.update_notification_status(db, notification_id, payload.status)
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc
    return business.serialize_notification(notification)
