"""Business-owner flow: listing claims and the admin notification queue."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from laundrylocator.core.exceptions import NotFoundError, ValidationError
from laundrylocator.core.logger import get_logger
from laundrylocator.models import AdminNotification, Laundromat, User
from laundrylocator.services import directory

logger = get_logger(__name__)

NOTIFICATION_STATUSES = ("unread", "read", "approved", "rejected")


def serialize_notification(row: AdminNotification) -> Dict[str, Any]:
    return {
        "id": row.id,
        "type": row.type,
        "status": row.status,
        "user_id": row.user_id,
        "laundry_id": row.laundry_id,
        "email": row.email,
        "phone": row.phone,
        "data": row.data or {},
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def claim_listing(
    db: Session,
    user: User,
    laundry_id: int,
    email: str,
    phone: Optional[str] = None,
    verification_method: str = "document",
    profile: Optional[Dict[str, Any]] = None,
) -> AdminNotification:
    """Queue a claim for admin review; the listing itself is untouched until approval."""
    laundromat = directory.get_laundromat(db, laundry_id)
    if laundromat is None:
        raise NotFoundError("Laundromat not found")
    if laundromat.owner_id and laundromat.owner_id != user.id:
        raise ValidationError("This listing has already been claimed")

    notification = AdminNotification(
        type="business_claim",
        status="unread",
        user_id=user.id,
        laundry_id=laundry_id,
        email=email,
        phone=phone,
        data={
            "verification_method": verification_method,
            "laundromat_name": laundromat.name,
            "profile": profile or {},
        },
    )
    db.add(notification)
    user.is_business_owner = True
    if user.role == "user":
        user.role = "owner"
    db.commit()
    db.refresh(notification)
    logger.info("User %s claimed laundromat %s (notification %s)", user.id, laundry_id, notification.id)
    return notification


def owned_laundromats(db: Session, user_id: int) -> List[Laundromat]:
    return db.query(Laundromat).filter(Laundromat.owner_id == user_id).order_by(Laundromat.name).all()


def list_notifications(db: Session, status: Optional[str] = None) -> List[AdminNotification]:
    query = db.query(AdminNotification)
    if status:
        query = query.filter(AdminNotification.status == status)
    return query.order_by(AdminNotification.id.desc()).all()


def update_notification_status(db: Session, notification_id: int, status: str) -> AdminNotification:
    """Set a notification's status; approving a claim assigns the listing to the claimant."""
    if status not in NOTIFICATION_STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    notification = db.query(AdminNotification).filter(AdminNotification.id == notification_id).first()
    if notification is None:
        raise NotFoundError("Notification not found")

    if status == "approved" and notification.type == "business_claim":
        laundromat = directory.get_laundromat(db, notification.laundry_id)
        if laundromat is not None:
            if laundromat.owner_id is not None and laundromat.owner_id != notification.user_id:
                raise ValidationError("This listing has already been claimed")
            laundromat.owner_id = notification.user_id
            laundromat.verified = True
    notification.status = status
    db.commit()
    db.refresh(notification)
    return notification
