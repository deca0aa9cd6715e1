from laundrylocator.services.slugs import city_slug, generate_slug, slugify, unique_slug


def test_slugify_handles_ampersand_and_punctuation():
    assert slugify("Bob's Wash & Fold") == "bobs-wash-and-fold"
    assert slugify("  Suds   City!! ") == "suds-city"
    assert slugify("--Spin--") == "spin"


def test_slugify_keeps_underscores_and_digits():
    assert slugify("Wash_24 7") == "wash_24-7"


def test_generate_slug_joins_name_city_state():
    assert generate_slug("Clean Spin", "Austin", "TX") == "clean-spin-austin-tx"
    assert generate_slug("", "", "") == "laundromat"
    assert city_slug("San Antonio", "TX") == "san-antonio-tx"


def test_unique_slug_appends_counter(db, make_laundromat):
    row = make_laundromat()
    assert row.slug == "clean-spin-austin-tx"
    assert unique_slug(db, row.slug) == "clean-spin-austin-tx-1"
    assert unique_slug(db, row.slug, reserved={"clean-spin-austin-tx-1"}) == "clean-spin-austin-tx-2"
    assert unique_slug(db, "never-used") == "never-used"
