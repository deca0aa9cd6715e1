"""
Subscription API Routes
Premium plans, Stripe PaymentIntents, webhooks and cancellation
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from laundrylocator.api.dependencies import get_current_user, http_error, require_admin
from laundrylocator.config import settings
from laundrylocator.core.exceptions import AppError, PaymentError
from laundrylocator.core.logger import get_logger
from laundrylocator.database import get_db
from laundrylocator.models import User
from laundrylocator.schemas.subscription import CreateSubscriptionRequest, CreateSubscriptionResponse
from laundrylocator.services import premium

router = APIRouter()
logger = get_logger(__name__)


@router.get("/subscriptions/plans")
async def list_plans() -> List[Dict[str, Any]]:
    return premium.list_plans()


@router.get("/subscriptions")
async def my_subscriptions(
    db: Session = Depends(get_db), user: User = Depends(get_current_user)
) -> List[Dict[str, Any]]:
    return [premium.serialize_subscription(s) for s in premium.subscriptions_for_user(db, user.id)]


@router.post("/create-subscription", response_model=CreateSubscriptionResponse)
async def create_subscription(
    payload: CreateSubscriptionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    """
    Create a Stripe PaymentIntent for a premium plan and a pending subscription
    """
    if not settings.stripe_enabled:
        raise HTTPException(status_code=503, detail="Payments are not configured")
    if payload.amount is not None and payload.amount != premium.price_for(payload.tier, payload.billing_cycle):
        logger.warning(
            "Ignoring client amount %s for %s/%s", payload.amount, payload.tier, payload.billing_cycle
        )
    try:
        return premium.create_payment_intent(
            db, user, payload.laundry_id, payload.tier, payload.billing_cycle
        )
    except AppError as exc:
        raise http_error(exc) from exc


@router.post("/subscriptions/{subscription_id}/cancel")
async def cancel_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    subscription = premium.get_subscription(db, subscription_id)
    if subscription is None:
        raise HTTPException(status_code=404, detail="Subscription not found")
    if subscription.user_id != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not your subscription")
    try:
        return premium.cancel_subscription(db, subscription)
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    payload = await request.body()
    try:
        event = premium.parse_webhook_event(payload, stripe_signature)
    except PaymentError as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        return premium.handle_webhook_event(db, event)
    except AppError as exc:
        db.rollback()
        logger.exception("Stripe webhook handling failed")
        raise http_error(exc) from exc


@router.post("/admin/subscriptions/expire")
async def expire_subscriptions(
    db: Session = Depends(get_db), _: User = Depends(require_admin)
) -> Dict[str, Any]:
    return {"expired": premium.expire_subscriptions(db)}
