from datetime import datetime, timedelta

import pytest

from laundrylocator.models import Subscription
from laundrylocator.services import premium
from laundrylocator.services.subscription_scheduler import SubscriptionScheduler


def test_compute_next_run():
    nxt = SubscriptionScheduler.compute_next_run("0 3 * * *", datetime(2024, 1, 1, 12, 0))
    assert nxt == datetime(2024, 1, 2, 3, 0)
    assert SubscriptionScheduler.compute_next_run("not a cron", datetime(2024, 1, 1)) is None
    assert SubscriptionScheduler.compute_next_run("", datetime(2024, 1, 1)) is None


@pytest.mark.asyncio
async def test_tick_waits_until_due(db):
    scheduler = SubscriptionScheduler("0 3 * * *")
    scheduler.next_run_at = datetime(2024, 1, 2, 3, 0)

    assert await scheduler.tick(now=datetime(2024, 1, 2, 2, 59)) is None
    assert scheduler.last_run_at is None


@pytest.mark.asyncio
async def test_tick_expires_subscriptions_and_reschedules(db, make_laundromat, make_user):
    laundromat = make_laundromat()
    subscription = Subscription(
        laundry_id=laundromat.id,
        user_id=make_user().id,
        tier="premium",
        amount=1999,
        billing_cycle="monthly",
        status="pending",
    )
    db.add(subscription)
    db.commit()
    premium.activate_subscription(db, subscription, now=datetime(2024, 1, 1))
    db.commit()

    scheduler = SubscriptionScheduler("0 3 * * *")
    now = datetime(2024, 3, 1, 3, 0)
    scheduler.next_run_at = now - timedelta(minutes=1)

    assert await scheduler.tick(now=now) == 1
    assert scheduler.last_run_at == now
    assert scheduler.next_run_at == datetime(2024, 3, 2, 3, 0)

    db.expire_all()
    assert db.get(Subscription, subscription.id).status == "expired"


@pytest.mark.asyncio
async def test_start_and_stop():
    scheduler = SubscriptionScheduler("0 3 * * *", poll_seconds=60)
    scheduler.next_run_at = datetime.utcnow() + timedelta(days=1)
    scheduler.start()
    await scheduler.stop()
    assert scheduler.last_run_at is None


def test_scheduler_logs_through_shared_logger():
    import logging

    from laundrylocator.core import logger as core_logger
    from laundrylocator.services import subscription_scheduler

    assert core_logger._configured is True
    assert subscription_scheduler.logger is logging.getLogger("laundrylocator.services.subscription_scheduler")
