"""
Premium listing plans, Stripe payments and the subscription lifecycle.

A subscription starts ``pending`` when the PaymentIntent is created, becomes
``active`` on ``payment_intent.succeeded`` and ends as ``cancelled`` or
``expired``. The laundromat's listing fields mirror the active subscription.
"""
from __future__ import annotations

import calendar
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy.orm import Session

from laundrylocator.config import settings
from laundrylocator.core.exceptions import NotFoundError, PaymentError, ValidationError
from laundrylocator.core.logger import get_logger
from laundrylocator.models import Laundromat, Subscription, User
from laundrylocator.services import directory

logger = get_logger(__name__)

TIER_FEATURES: Dict[str, Dict[str, Any]] = {
    "basic": {
        "photo_limit": 1,
        "show_hours": True,
        "show_phone": False,
        "show_website": False,
        "highlight_listing": False,
        "priority_search": False,
    },
    "premium": {
        "photo_limit": 5,
        "show_hours": True,
        "show_phone": True,
        "show_website": True,
        "highlight_listing": False,
        "priority_search": True,
    },
    "featured": {
        "photo_limit": 10,
        "show_hours": True,
        "show_phone": True,
        "show_website": True,
        "highlight_listing": True,
        "priority_search": True,
    },
}

PLANS: Dict[str, Dict[str, Any]] = {
    "premium": {
        "name": "Premium Listing",
        "description": (
            "Enhance visibility with premium placement in search results, "
            "phone and website display, and up to 5 photos."
        ),
        "monthly_price": 1999,
        "annual_price": 19999,
        "features": [
            "Display phone number and website",
            "Higher placement in search results",
            "Upload up to 5 photos",
            "Detailed business information",
            "Enhanced business profile",
        ],
    },
    "featured": {
        "name": "Featured Listing",
        "description": (
            "Maximum visibility with featured listings on the homepage, "
            "highlighted appearance, and up to 10 photos."
        ),
        "monthly_price": 3999,
        "annual_price": 39999,
        "features": [
            "All Premium Listing features",
            "Highlighted appearance in search results",
            "Featured placement on homepage",
            "Upload up to 10 photos",
            "Priority search ranking",
            "Special promotional text",
        ],
    },
}

BILLING_CYCLES = ("monthly", "annually")
ACTIVE_STATUSES = ("active", "past_due")


def get_tier_features(listing_type: Optional[str]) -> Dict[str, Any]:
    return dict(TIER_FEATURES.get(listing_type or "basic", TIER_FEATURES["basic"]))


def price_for(tier: str, billing_cycle: str) -> int:
    """Plan price in cents."""
    plan = PLANS.get(tier)
    if plan is None:
        raise ValidationError(f"Unknown plan tier: {tier}")
    if billing_cycle not in BILLING_CYCLES:
        raise ValidationError(f"Unknown billing cycle: {billing_cycle}")
    return plan["monthly_price"] if billing_cycle == "monthly" else plan["annual_price"]


def format_price(amount: int) -> str:
    return f"${amount / 100:.2f}"


def is_subscription_active(status: Optional[str]) -> bool:
    return status in ACTIVE_STATUSES


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.replace(tzinfo=None) - (value.utcoffset() or timedelta(0))
    return value


def calculate_prorated_refund(
    amount: int,
    start_date: datetime,
    end_date: datetime,
    cancel_date: Optional[datetime] = None,
) -> int:
    """Refund in cents for the unused share of the period; 0 once the period has ended."""
    start = _naive(start_date)
    end = _naive(end_date)
    cancel = _naive(cancel_date or datetime.utcnow())
    total = (end - start).total_seconds()
    remaining = (end - cancel).total_seconds()
    if total <= 0 or remaining <= 0:
        return 0
    return round(amount * min(remaining / total, 1.0))


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def period_end(start: datetime, billing_cycle: str) -> datetime:
    return add_months(start, 12 if billing_cycle == "annually" else 1)


def list_plans() -> List[Dict[str, Any]]:
    plans = []
    for tier, plan in PLANS.items():
        plans.append(
            {
                "tier": tier,
                **plan,
                "monthly_price_display": format_price(plan["monthly_price"]),
                "annual_price_display": format_price(plan["annual_price"]),
                "limits": get_tier_features(tier),
            }
        )
    return plans


def serialize_subscription(row: Subscription) -> Dict[str, Any]:
    return {
        "id": row.id,
        "laundry_id": row.laundry_id,
        "user_id": row.user_id,
        "tier": row.tier,
        "amount": row.amount,
        "amount_display": format_price(row.amount or 0),
        "billing_cycle": row.billing_cycle,
        "status": row.status,
        "start_date": row.start_date.isoformat() if row.start_date else None,
        "end_date": row.end_date.isoformat() if row.end_date else None,
        "auto_renew": bool(row.auto_renew),
        "stripe_payment_intent_id": row.stripe_payment_intent_id,
    }


def _configure_stripe() -> None:
    if not settings.stripe_enabled:
        raise PaymentError("Stripe is not configured")
    stripe.api_key = settings.stripe_secret_key.get_secret_value()


def _ensure_customer(db: Session, user: User) -> str:
    if user.stripe_customer_id:
        return user.stripe_customer_id
    customer = stripe.Customer.create(
        email=user.email,
        name=user.username,
        metadata={"user_id": str(user.id)},
    )
    user.stripe_customer_id = customer["id"]
    db.flush()
    return customer["id"]


def create_payment_intent(
    db: Session,
    user: User,
    laundry_id: int,
    tier: str,
    billing_cycle: str,
) -> Dict[str, Any]:
    """
    Start a premium subscription for ``laundry_id``.

    The charged amount always comes from ``PLANS``. A ``pending`` subscription is
    stored and the PaymentIntent client secret is returned for the browser to
    confirm the card payment.
    """
    laundromat = directory.get_laundromat(db, laundry_id)
    if laundromat is None:
        raise NotFoundError("Laundromat not found")
    amount = price_for(tier, billing_cycle)
    _configure_stripe()

    try:
        customer_id = _ensure_customer(db, user)
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=settings.stripe_currency,
            customer=customer_id,
            automatic_payment_methods={"enabled": True},
            metadata={
                "laundry_id": str(laundry_id),
                "user_id": str(user.id),
                "tier": tier,
                "billing_cycle": billing_cycle,
            },
        )
    except stripe.StripeError as exc:
        db.rollback()
        logger.exception("Stripe PaymentIntent creation failed for laundromat %s", laundry_id)
        raise PaymentError(f"Payment provider error: {exc}") from exc

    subscription = Subscription(
        laundry_id=laundry_id,
        user_id=user.id,
        tier=tier,
        amount=amount,
        billing_cycle=billing_cycle,
        stripe_payment_intent_id=intent["id"],
        status="pending",
        auto_renew=True,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info(
        "Created pending %s/%s subscription %s for laundromat %s",
        tier,
        billing_cycle,
        subscription.id,
        laundry_id,
    )
    return {
        "client_secret": intent["client_secret"],
        "subscription_id": subscription.id,
        "amount": amount,
        "amount_display": format_price(amount),
    }


WEBHOOK_INTENT_STATUSES = {
    "payment_intent.succeeded": ("succeeded",),
    "payment_intent.payment_failed": ("requires_payment_method", "canceled"),
}


def parse_webhook_event(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Verify the Stripe signature when a webhook secret is configured.

    Without a secret the JSON body is read as-is. If Stripe is enabled the
    PaymentIntent it names is then fetched from Stripe and must be in a status
    matching the event type.
    """
    secret = settings.stripe_webhook_secret
    if secret and secret.get_secret_value():
        if not signature:
            raise PaymentError("Missing Stripe signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, secret.get_secret_value())
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise PaymentError(f"Invalid webhook: {exc}") from exc
    try:
        event = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PaymentError("Invalid webhook payload") from exc
    if not isinstance(event, dict):
        raise PaymentError("Invalid webhook payload")
    if settings.stripe_enabled and event.get("type") in WEBHOOK_INTENT_STATUSES:
        _confirm_intent(event)
    return event


def _confirm_intent(event: Dict[str, Any]) -> None:
    intent_id = ((event.get("data") or {}).get("object") or {}).get("id")
    if not intent_id:
        raise PaymentError("Webhook event has no PaymentIntent id")
    _configure_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id)
    except stripe.StripeError as exc:
        raise PaymentError(f"Could not confirm PaymentIntent {intent_id}: {exc}") from exc
    if intent["status"] not in WEBHOOK_INTENT_STATUSES[event["type"]]:
        logger.warning(
            "Unsigned %s webhook for %s rejected, intent status is %s",
            event["type"],
            intent_id,
            intent["status"],
        )
        raise PaymentError(f"PaymentIntent {intent_id} is {intent['status']}")
    event["data"]["object"] = intent


def activate_subscription(db: Session, subscription: Subscription, now: Optional[datetime] = None) -> Laundromat:
    now = now or datetime.utcnow()
    subscription.status = "active"
    subscription.start_date = now
    subscription.end_date = period_end(now, subscription.billing_cycle)

    laundromat = directory.get_laundromat(db, subscription.laundry_id)
    if laundromat is None:
        raise NotFoundError("Laundromat not found")
    laundromat.listing_type = subscription.tier
    laundromat.is_premium = True
    laundromat.is_featured = subscription.tier == "featured"
    laundromat.subscription_active = True
    laundromat.subscription_status = "active"
    laundromat.subscription_id = subscription.id
    laundromat.subscription_expiry = subscription.end_date
    if subscription.tier == "featured":
        laundromat.featured_until = subscription.end_date
        laundromat.featured_rank = directory.next_featured_rank(db)
    return laundromat


def revert_to_basic(laundromat: Laundromat, status: str) -> None:
    laundromat.listing_type = "basic"
    laundromat.is_premium = False
    laundromat.is_featured = False
    laundromat.subscription_active = False
    laundromat.subscription_status = status
    laundromat.featured_rank = None
    laundromat.featured_until = None


def handle_webhook_event(db: Session, event: Dict[str, Any]) -> Dict[str, Any]:
    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}
    intent_id = intent.get("id")

    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        logger.info("Ignoring Stripe event %s", event_type)
        return {"received": True, "handled": False}

    subscription = (
        db.query(Subscription).filter(Subscription.stripe_payment_intent_id == intent_id).first()
    )
    if subscription is None:
        logger.warning("Stripe event %s for unknown PaymentIntent %s", event_type, intent_id)
        return {"received": True, "handled": False}

    if event_type == "payment_intent.succeeded":
        if subscription.status == "active":
            return {"received": True, "handled": True, "subscription_id": subscription.id}
        laundromat = activate_subscription(db, subscription)
        db.commit()
        logger.info(
            "Activated %s subscription %s for laundromat %s until %s",
            subscription.tier,
            subscription.id,
            laundromat.id,
            subscription.end_date,
        )
    else:
        subscription.status = "cancelled"
        subscription.auto_renew = False
        db.commit()
        error = (intent.get("last_payment_error") or {}).get("message")
        logger.warning("Payment failed for subscription %s: %s", subscription.id, error)

    return {"received": True, "handled": True, "subscription_id": subscription.id}


def get_subscription(db: Session, subscription_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.id == subscription_id).first()


def subscriptions_for_user(db: Session, user_id: int) -> List[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.id.desc())
        .all()
    )


def cancel_subscription(db: Session, subscription: Subscription, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Cancel immediately, revert the listing and report the prorated refund."""
    if subscription.status in ("cancelled", "expired"):
        raise ValidationError(f"Subscription is already {subscription.status}")
    now = now or datetime.utcnow()
    refund = 0
    if subscription.status == "active" and subscription.start_date and subscription.end_date:
        refund = calculate_prorated_refund(subscription.amount, subscription.start_date, subscription.end_date, now)

    subscription.status = "cancelled"
    subscription.auto_renew = False
    laundromat = directory.get_laundromat(db, subscription.laundry_id)
    if laundromat is not None and laundromat.subscription_id == subscription.id:
        revert_to_basic(laundromat, "cancelled")
    db.commit()
    logger.info("Cancelled subscription %s (refund %s)", subscription.id, format_price(refund))
    return {
        "success": True,
        "subscription_id": subscription.id,
        "refund_amount": refund,
        "refund_display": format_price(refund),
    }


def expire_subscriptions(db: Session, now: Optional[datetime] = None) -> int:
    """Mark active subscriptions past their end date expired and revert their listings."""
    now = now or datetime.utcnow()
    due = (
        db.query(Subscription)
        .filter(Subscription.status == "active", Subscription.end_date < now)
        .all()
    )
    for subscription in due:
        subscription.status = "expired"
        subscription.auto_renew = False
        laundromat = directory.get_laundromat(db, subscription.laundry_id)
        if laundromat is not None and laundromat.subscription_id == subscription.id:
            revert_to_basic(laundromat, "expired")
    db.commit()
    if due:
        logger.info("Expired %s subscriptions", len(due))
    return len(due)


def premium_features(laundromat: Laundromat) -> Dict[str, Any]:
    return {
        "laundry_id": laundromat.id,
        "listing_type": laundromat.listing_type or "basic",
        "subscription_active": bool(laundromat.subscription_active),
        "limits": get_tier_features(laundromat.listing_type),
        "promotional_text": laundromat.promotional_text,
        "amenities": list(laundromat.amenities or []),
        "machine_count": laundromat.machine_count or {},
        "photos": list(laundromat.photos or []),
        "special_offers": list(laundromat.special_offers or []),
        "payment_options": list(laundromat.payment_options or []),
    }


EDITABLE_PREMIUM_FIELDS = ("promotional_text", "amenities", "machine_count", "photos", "special_offers", "payment_options")


def update_premium_features(db: Session, laundromat: Laundromat, data: Dict[str, Any]) -> Laundromat:
    if not laundromat.subscription_active or laundromat.listing_type not in ("premium", "featured"):
        raise PaymentError("An active premium subscription is required")
    limit = get_tier_features(laundromat.listing_type)["photo_limit"]
    photos = data.get("photos")
    if photos is not None and len(photos) > limit:
        raise ValidationError(f"{laundromat.listing_type.title()} listings allow up to {limit} photos")
    for key in EDITABLE_PREMIUM_FIELDS:
        if data.get(key) is not None:
            setattr(laundromat, key, data[key])
    db.commit()
    db.refresh(laundromat)
    return laundromat
