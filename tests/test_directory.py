import pytest

from laundrylocator.core.exceptions import ValidationError
from laundrylocator.models import City, State
from laundrylocator.services import directory


def test_create_assigns_unique_slugs_and_counts(db, make_laundromat):
    first = make_laundromat()
    second = make_laundromat(address="200 Congress Ave")

    assert first.slug == "clean-spin-austin-tx"
    assert second.slug == "clean-spin-austin-tx-1"

    city = db.query(City).filter(City.slug == "austin-tx").one()
    state = db.query(State).filter(State.abbr == "TX").one()
    assert city.laundry_count == 2
    assert state.laundry_count == 2


def test_create_requires_core_fields(db):
    with pytest.raises(ValidationError):
        directory.create_laundromat(db, {"name": "No Address", "city": "Austin", "state": "TX"})


def test_create_normalizes_state_name(db, make_laundromat):
    row = make_laundromat(state="Texas")
    assert row.state == "TX"


def test_create_rejects_out_of_range_coordinates(db, make_laundromat):
    with pytest.raises(ValidationError):
        make_laundromat(latitude=95.0, longitude=10.0)


def test_update_moves_location_counts(db, make_laundromat):
    row = make_laundromat()
    directory.update_laundromat(db, row, {"city": "Dallas"})

    austin = db.query(City).filter(City.slug == "austin-tx").one()
    dallas = db.query(City).filter(City.slug == "dallas-tx").one()
    assert austin.laundry_count == 0
    assert dallas.laundry_count == 1


def test_update_rejects_blank_required_fields(db, make_laundromat):
    row = make_laundromat()
    for field in ("name", "address", "city", "state"):
        with pytest.raises(ValidationError):
            directory.update_laundromat(db, row, {field: None})
    with pytest.raises(ValidationError):
        directory.update_laundromat(db, row, {"name": "   "})
    db.refresh(row)
    assert row.name == "Clean Spin"


def test_update_validates_merged_coordinates(db, make_laundromat):
    row = make_laundromat()
    with pytest.raises(ValidationError):
        directory.update_laundromat(db, row, {"latitude": 500.0})
    db.refresh(row)
    assert row.latitude == 30.2672

    no_coords = make_laundromat(address="9 Elm St", latitude=None, longitude=None)
    with pytest.raises(ValidationError):
        directory.update_laundromat(db, no_coords, {"longitude": -200.0})
    updated = directory.update_laundromat(db, no_coords, {"latitude": 30.3})
    assert updated.latitude == 30.3


def test_delete_decrements_counts(db, make_laundromat):
    row = make_laundromat()
    directory.delete_laundromat(db, row)
    state = db.query(State).filter(State.abbr == "TX").one()
    assert state.laundry_count == 0
    assert directory.get_laundromat(db, row.id) is None


def test_search_orders_featured_then_premium_then_basic(db, make_laundromat):
    make_laundromat(name="Basic Suds", rating=4.9)
    premium_row = make_laundromat(name="Premium Suds")
    featured_row = make_laundromat(name="Featured Suds")
    premium_row.listing_type = "premium"
    featured_row.listing_type = "featured"
    featured_row.featured_rank = 1
    db.commit()

    total, rows = directory.search_laundromats(db, q="suds")
    assert total == 3
    assert [row.name for row in rows] == ["Featured Suds", "Premium Suds", "Basic Suds"]


def test_search_filters(db, make_laundromat):
    make_laundromat(name="Night Owl", hours="Open 24 Hours", services=["wash and fold", "wifi"], rating=4.5)
    make_laundromat(name="Day Wash", services=["coin laundry"], rating=3.0)

    total, rows = directory.search_laundromats(db, open_now=True)
    assert [row.name for row in rows] == ["Night Owl"]

    total, rows = directory.search_laundromats(db, services=["WiFi", "wash and fold"])
    assert total == 1 and rows[0].name == "Night Owl"

    total, rows = directory.search_laundromats(db, min_rating=4.0)
    assert [row.name for row in rows] == ["Night Owl"]


def test_search_paginates(db, make_laundromat):
    for index in range(5):
        make_laundromat(name=f"Spin {index}")
    total, rows = directory.search_laundromats(db, q="spin", limit=2, offset=2)
    assert total == 5
    assert len(rows) == 2


def test_nearby_orders_by_distance(db, make_laundromat):
    make_laundromat(name="Downtown", latitude=30.2672, longitude=-97.7431)
    make_laundromat(name="North", latitude=30.3500, longitude=-97.7431)
    make_laundromat(name="Houston", latitude=29.7604, longitude=-95.3698, city="Houston")

    matches = directory.nearby_laundromats(db, 30.2672, -97.7431, radius=10)
    assert [row.name for row, _ in matches] == ["Downtown", "North"]
    assert matches[0][1] == 0.0
    assert 5 < matches[1][1] < 6


def test_nearby_expands_then_falls_back(db, make_laundromat):
    make_laundromat(name="Round Rock", latitude=30.5083, longitude=-97.6789, city="Round Rock")
    expanded = directory.nearby_laundromats(db, 30.2672, -97.7431, radius=10)
    assert [row.name for row, _ in expanded] == ["Round Rock"]

    fallback = directory.nearby_laundromats(db, 40.7128, -74.0060, radius=5)
    assert [row.name for row, _ in fallback] == ["Round Rock"]
    assert fallback[0][1] > 1000


def test_nearby_rejects_bad_input(db):
    with pytest.raises(ValidationError):
        directory.nearby_laundromats(db, 120.0, 0.0)
    with pytest.raises(ValidationError):
        directory.nearby_laundromats(db, 30.0, -97.0, radius=0)


def test_reviews_update_rating(db, make_laundromat, make_user):
    row = make_laundromat()
    alice = make_user("alice")
    bob = make_user("bob")
    directory.add_review(db, row, alice.id, 5, "Spotless")
    directory.add_review(db, row, bob.id, 4, None)

    db.refresh(row)
    assert row.review_count == 2
    assert row.rating == 4.5
    with pytest.raises(ValidationError):
        directory.add_review(db, row, alice.id, 6, "Too good")


def test_favorites_are_idempotent(db, make_laundromat, make_user):
    row = make_laundromat()
    user = make_user()
    first = directory.add_favorite(db, user.id, row.id)
    again = directory.add_favorite(db, user.id, row.id)
    assert first.id == again.id
    assert [listing.id for listing in directory.list_favorites(db, user.id)] == [row.id]
    assert directory.remove_favorite(db, user.id, row.id) is True
    assert directory.remove_favorite(db, user.id, row.id) is False


def test_resolve_state_and_city(db, make_laundromat):
    make_laundromat()
    assert directory.resolve_state(db, "texas").abbr == "TX"
    assert directory.resolve_state(db, "tx").abbr == "TX"
    assert directory.resolve_state(db, "new-york").abbr == "NY"
    assert directory.resolve_state(db, "atlantis") is None

    city = directory.resolve_city(db, "austin-tx")
    assert city.name == "Austin"
    assert [row.name for row in directory.laundromats_in_city(db, city)] == ["Clean Spin"]
    assert directory.resolve_city(db, "nowhere-zz") is None


def test_featured_ranks(db, make_laundromat):
    assert directory.next_featured_rank(db) == 1
    row = make_laundromat()
    row.is_featured = True
    row.featured_rank = 3
    db.commit()
    assert directory.next_featured_rank(db) == 4
    assert [r.id for r in directory.featured_laundromats(db)] == [row.id]
