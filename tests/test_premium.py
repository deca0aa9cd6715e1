import json
from datetime import datetime, timezone

import pytest
import stripe
from pydantic import SecretStr

from laundrylocator.config import settings
from laundrylocator.core.exceptions import NotFoundError, PaymentError, ValidationError
from laundrylocator.models import Subscription
from laundrylocator.services import directory, premium


def test_plan_prices():
    assert premium.price_for("premium", "monthly") == 1999
    assert premium.price_for("premium", "annually") == 19999
    assert premium.price_for("featured", "monthly") == 3999
    assert premium.price_for("featured", "annually") == 39999
    with pytest.raises(ValidationError):
        premium.price_for("gold", "monthly")
    with pytest.raises(ValidationError):
        premium.price_for("premium", "weekly")


def test_format_price_and_active_statuses():
    assert premium.format_price(1999) == "$19.99"
    assert premium.format_price(0) == "$0.00"
    assert premium.is_subscription_active("active")
    assert premium.is_subscription_active("past_due")
    assert not premium.is_subscription_active("cancelled")
    assert not premium.is_subscription_active(None)


def test_tier_features_photo_limits():
    assert premium.get_tier_features("basic")["photo_limit"] == 1
    assert premium.get_tier_features("premium")["photo_limit"] == 5
    assert premium.get_tier_features("featured")["photo_limit"] == 10
    assert premium.get_tier_features(None) == premium.get_tier_features("basic")


def test_prorated_refund():
    start = datetime(2024, 1, 1)
    end = datetime(2024, 1, 31)
    assert premium.calculate_prorated_refund(3000, start, end, datetime(2024, 1, 16)) == 1500
    assert premium.calculate_prorated_refund(3000, start, end, datetime(2024, 2, 5)) == 0
    assert premium.calculate_prorated_refund(3000, end, start, datetime(2024, 1, 16)) == 0


def test_prorated_refund_accepts_aware_datetimes():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2024, 1, 31, tzinfo=timezone.utc)
    assert premium.calculate_prorated_refund(3000, start, end, datetime(2024, 1, 16)) == 1500


def test_period_end_clamps_month_end():
    assert premium.add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert premium.period_end(datetime(2024, 2, 29), "annually") == datetime(2025, 2, 28)
    assert premium.period_end(datetime(2024, 12, 15), "monthly") == datetime(2025, 1, 15)


def _pending(db, laundromat, user, tier="featured", cycle="monthly", intent="pi_1"):
    subscription = Subscription(
        laundry_id=laundromat.id,
        user_id=user.id,
        tier=tier,
        amount=premium.price_for(tier, cycle),
        billing_cycle=cycle,
        stripe_payment_intent_id=intent,
        status="pending",
    )
    db.add(subscription)
    db.commit()
    return subscription


def _succeeded(intent):
    return {"type": "payment_intent.succeeded", "data": {"object": {"id": intent}}}


def test_webhook_success_activates_featured_listing(db, make_laundromat, make_user):
    laundromat = make_laundromat()
    subscription = _pending(db, laundromat, make_user())

    result = premium.handle_webhook_event(db, _succeeded("pi_1"))

    assert result == {"received": True, "handled": True, "subscription_id": subscription.id}
    db.refresh(subscription)
    db.refresh(laundromat)
    assert subscription.status == "active"
    assert subscription.end_date > subscription.start_date
    assert laundromat.listing_type == "featured"
    assert laundromat.is_featured is True
    assert laundromat.is_premium is True
    assert laundromat.subscription_active is True
    assert laundromat.featured_rank == 1


def test_webhook_assigns_next_featured_rank(db, make_laundromat, make_user):
    user = make_user()
    first = make_laundromat(name="First Wash")
    second = make_laundromat(name="Second Wash")
    _pending(db, first, user, intent="pi_a")
    _pending(db, second, user, intent="pi_b")

    premium.handle_webhook_event(db, _succeeded("pi_a"))
    premium.handle_webhook_event(db, _succeeded("pi_b"))

    db.refresh(first)
    db.refresh(second)
    assert (first.featured_rank, second.featured_rank) == (1, 2)


def test_webhook_payment_failed_cancels_pending(db, make_laundromat, make_user):
    subscription = _pending(db, make_laundromat(), make_user())
    premium.handle_webhook_event(
        db, {"type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_1"}}}
    )
    db.refresh(subscription)
    assert subscription.status == "cancelled"


def test_webhook_ignores_unknown_events_and_intents(db):
    assert premium.handle_webhook_event(db, {"type": "charge.refunded", "data": {"object": {}}}) == {
        "received": True,
        "handled": False,
    }
    assert premium.handle_webhook_event(db, _succeeded("pi_missing"))["handled"] is False


def test_parse_webhook_event_without_secret_reads_json():
    event = premium.parse_webhook_event(b'{"type": "ping"}', None)
    assert event == {"type": "ping"}
    with pytest.raises(PaymentError):
        premium.parse_webhook_event(b"not json", None)


def test_parse_webhook_event_requires_signature_when_secret_set(monkeypatch):
    monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
    with pytest.raises(PaymentError):
        premium.parse_webhook_event(b'{"type": "ping"}', None)
    with pytest.raises(PaymentError):
        premium.parse_webhook_event(b'{"type": "ping"}', "t=1,v1=bad")


def test_unsigned_event_is_confirmed_with_stripe(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", SecretStr("sk_test_123"))
    statuses = {"pi_paid": "succeeded", "pi_open": "requires_payment_method"}
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "retrieve",
        lambda intent_id, **kwargs: {"id": intent_id, "status": statuses[intent_id], "amount": 1999},
    )

    paid = premium.parse_webhook_event(json.dumps(_succeeded("pi_paid")).encode(), None)
    assert paid["data"]["object"]["amount"] == 1999

    with pytest.raises(PaymentError, match="requires_payment_method"):
        premium.parse_webhook_event(json.dumps(_succeeded("pi_open")).encode(), None)

    failed = {"type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_open"}}}
    assert premium.parse_webhook_event(json.dumps(failed).encode(), None)["type"] == "payment_intent.payment_failed"

    assert premium.parse_webhook_event(b'{"type": "ping"}', None) == {"type": "ping"}


def test_cancel_reports_refund_and_reverts_listing(db, make_laundromat, make_user):
    laundromat = make_laundromat()
    subscription = _pending(db, laundromat, make_user())
    premium.activate_subscription(db, subscription, now=datetime(2024, 1, 1))
    db.commit()

    result = premium.cancel_subscription(db, subscription, now=datetime(2024, 1, 16, 12))

    assert result["success"] is True
    assert 0 < result["refund_amount"] < 3999
    db.refresh(laundromat)
    assert laundromat.listing_type == "basic"
    assert laundromat.is_featured is False
    assert laundromat.subscription_status == "cancelled"
    with pytest.raises(ValidationError):
        premium.cancel_subscription(db, subscription)


def test_expire_subscriptions_past_end_date(db, make_laundromat, make_user):
    laundromat = make_laundromat()
    subscription = _pending(db, laundromat, make_user(), tier="premium")
    premium.activate_subscription(db, subscription, now=datetime(2024, 1, 1))
    db.commit()

    assert premium.expire_subscriptions(db, now=datetime(2024, 1, 15)) == 0
    assert premium.expire_subscriptions(db, now=datetime(2024, 2, 2)) == 1

    db.refresh(subscription)
    db.refresh(laundromat)
    assert subscription.status == "expired"
    assert laundromat.listing_type == "basic"
    assert laundromat.subscription_active is False


def test_premium_features_require_active_subscription(db, make_laundromat, make_user):
    laundromat = make_laundromat()
    with pytest.raises(PaymentError):
        premium.update_premium_features(db, laundromat, {"promotional_text": "20% off"})

    subscription = _pending(db, laundromat, make_user(), tier="premium")
    premium.activate_subscription(db, subscription)
    db.commit()

    with pytest.raises(ValidationError):
        premium.update_premium_features(db, laundromat, {"photos": [f"https://img/{i}" for i in range(6)]})

    updated = premium.update_premium_features(
        db,
        laundromat,
        {"promotional_text": "20% off Tuesdays", "photos": [f"https://img/{i}" for i in range(5)]},
    )
    assert updated.promotional_text == "20% off Tuesdays"
    assert len(updated.photos) == 5


def test_create_payment_intent_uses_plan_amount(db, make_laundromat, make_user, monkeypatch):
    calls = {}

    def fake_customer_create(**kwargs):
        calls["customer"] = kwargs
        return {"id": "cus_123"}

    def fake_intent_create(**kwargs):
        calls["intent"] = kwargs
        return {"id": "pi_new", "client_secret": "pi_new_secret"}

    monkeypatch.setattr(settings, "stripe_secret_key", SecretStr("sk_test_123"))
    monkeypatch.setattr(stripe.Customer, "create", fake_customer_create)
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_intent_create)

    laundromat = make_laundromat()
    user = make_user()
    result = premium.create_payment_intent(db, user, laundromat.id, "featured", "annually")

    assert result["client_secret"] == "pi_new_secret"
    assert result["amount"] == 39999
    assert calls["intent"]["amount"] == 39999
    assert calls["intent"]["customer"] == "cus_123"
    assert calls["intent"]["metadata"]["tier"] == "featured"
    subscription = db.query(Subscription).filter(Subscription.id == result["subscription_id"]).one()
    assert subscription.status == "pending"
    assert subscription.stripe_payment_intent_id == "pi_new"
    db.refresh(user)
    assert user.stripe_customer_id == "cus_123"


def test_create_payment_intent_errors(db, make_user, monkeypatch):
    user = make_user()
    with pytest.raises(NotFoundError):
        premium.create_payment_intent(db, user, 999, "premium", "monthly")

    monkeypatch.setattr(settings, "stripe_secret_key", None)
    laundromat_id = directory.create_laundromat(
        db, {"name": "Solo", "address": "1 A St", "city": "Waco", "state": "TX"}
    ).id
    with pytest.raises(PaymentError):
        premium.create_payment_intent(db, user, laundromat_id, "premium", "monthly")
