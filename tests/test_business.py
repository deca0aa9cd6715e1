import pytest

from laundrylocator.core.exceptions import NotFoundError, ValidationError
from laundrylocator.services import business


def test_claim_queues_notification_without_touching_listing(db, make_laundromat, make_user):
    listing = make_laundromat()
    alice = make_user("alice")

    notification = business.claim_listing(db, alice, listing.id, email="alice@wash.example")

    assert notification.status == "unread"
    assert notification.data["laundromat_name"] == "Clean Spin"
    db.refresh(listing)
    assert listing.owner_id is None
    assert alice.role == "owner"


def test_approving_second_claim_keeps_first_owner(db, make_laundromat, make_user):
    listing = make_laundromat()
    alice = make_user("alice")
    bob = make_user("bob")
    first = business.claim_listing(db, alice, listing.id, email="alice@wash.example")
    second = business.claim_listing(db, bob, listing.id, email="bob@wash.example")

    business.update_notification_status(db, first.id, "approved")
    with pytest.raises(ValidationError):
        business.update_notification_status(db, second.id, "approved")
    db.rollback()

    db.refresh(listing)
    db.refresh(second)
    assert listing.owner_id == alice.id
    assert second.status == "unread"
    assert business.update_notification_status(db, second.id, "rejected").status == "rejected"


def test_reapproving_same_owner_is_allowed(db, make_laundromat, make_user):
    listing = make_laundromat()
    alice = make_user("alice")
    notification = business.claim_listing(db, alice, listing.id, email="alice@wash.example")

    business.update_notification_status(db, notification.id, "approved")
    business.update_notification_status(db, notification.id, "approved")

    db.refresh(listing)
    assert listing.owner_id == alice.id
    assert listing.verified is True


def test_update_notification_status_errors(db):
    with pytest.raises(ValidationError):
        business.update_notification_status(db, 1, "archived")
    with pytest.raises(NotFoundError):
        business.update_notification_status(db, 999, "read")
