import pytest

from laundrylocator.core.exceptions import ValidationError
from laundrylocator.models import City, Laundromat
from laundrylocator.services import csv_importer

DIRECTORY_CSV = """name,address,city,state,zip,latitude,longitude,hours,services
Clean Spin,100 Congress Ave,Austin,TX,78701,30.2672,-97.7431,Open 24 Hours,"coin laundry, wifi"
Clean Spin Again,100  Congress Ave,Austin,TX,78701,30.2672,-97.7431,,
Bubble Wash,,Austin,TX,78702,,,,
Sud City,5 Main St,Dallas,Texas,75201,32.7767,-96.7970,Mon-Sun 6AM-11PM,
"""


def test_split_full_address():
    assert csv_importer.split_full_address("500 Elm St, Houston, TX 77002, United States") == {
        "address": "500 Elm St",
        "city": "Houston",
        "state": "TX",
        "zip": "77002",
    }
    assert csv_importer.split_full_address("9 Oak Rd, Salem, Oregon")["state"] == "Oregon"


def test_format_hours_flattens_json():
    value = '{"Monday": "6AM-10PM", "Tuesday": ["6AM-2PM", "4PM-10PM"]}'
    assert csv_importer.format_hours(value) == "Monday: 6AM-10PM; Tuesday: 6AM-2PM, 4PM-10PM"
    assert csv_importer.format_hours("Mon-Fri 9-5") == "Mon-Fri 9-5"


def test_normalize_outscraper_row():
    record = csv_importer.normalize_row(
        {
            "title": "Wash World",
            "full_address": "500 Elm St, Houston, Texas 77002",
            "gps_coordinates": "29.7604, -95.3698",
            "working_hours": "Open 24 hours",
            "site": "https://washworld.example",
            "reviews": "1,234",
        }
    )
    assert record["name"] == "Wash World"
    assert record["address"] == "500 Elm St"
    assert record["city"] == "Houston"
    assert record["state"] == "TX"
    assert record["zip"] == "77002"
    assert (record["latitude"], record["longitude"]) == ("29.7604", "-95.3698")
    assert record["website"] == "https://washworld.example"

    listing = csv_importer.build_listing(record)
    assert listing["review_count"] == 1234
    assert listing["latitude"] == pytest.approx(29.7604)
    assert "24 hour" in listing["services"]


def test_build_listing_keeps_http_photos_only():
    record = csv_importer.normalize_row(
        {
            "name": "Photo Wash",
            "address": "1 A St",
            "city": "Waco",
            "state": "TX",
            "photos": "https://img.example/1.jpg, ftp://bad, https://img.example/2.jpg",
            "services": "drop-off",
        }
    )
    listing = csv_importer.build_listing(record)
    assert listing["photos"] == ["https://img.example/1.jpg", "https://img.example/2.jpg"]
    assert listing["image_url"] == "https://img.example/1.jpg"
    assert listing["services"] == ["drop-off"]


def test_import_counts_duplicates_and_errors(db):
    result = csv_importer.import_csv_text(db, DIRECTORY_CSV)

    assert result["total"] == 4
    assert result["imported"] == 2
    assert result["duplicates"] == 1
    assert len(result["errors"]) == 1
    assert "Row 3" in result["errors"][0]
    assert result["message"] == "Processed 4 records: 2 imported, 1 duplicates, 1 errors"

    dallas = db.query(Laundromat).filter(Laundromat.city == "Dallas").one()
    assert dallas.state == "TX"
    assert dallas.slug == "sud-city-dallas-tx"
    spin = db.query(Laundromat).filter(Laundromat.city == "Austin").one()
    assert spin.services == ["coin laundry", "wifi"]
    assert db.query(City).filter(City.slug == "austin-tx").one().laundry_count == 1


def test_import_skips_addresses_already_in_database(db, make_laundromat):
    make_laundromat()
    result = csv_importer.import_csv_text(db, DIRECTORY_CSV)
    assert result["imported"] == 1
    assert result["duplicates"] == 2


def test_import_same_name_in_chunk_gets_distinct_slugs(db):
    text = "name,address,city,state\nLaundromax,1 First St,Austin,TX\nLaundromax,2 Second St,Austin,TX\n"
    result = csv_importer.import_csv_text(db, text, chunk_size=10)
    assert result["imported"] == 2
    slugs = sorted(row.slug for row in db.query(Laundromat).all())
    assert slugs == ["laundromax-austin-tx", "laundromax-austin-tx-1"]


@pytest.mark.asyncio
async def test_run_async_reports_progress(db):
    rows = csv_importer.parse_csv_text(DIRECTORY_CSV)
    seen = []
    result = await csv_importer.CSVImporter(db, chunk_size=2).run_async(rows, on_progress=seen.append)
    assert result.imported == 2
    assert seen == [50, 99]


def test_import_missing_file(db, tmp_path):
    result = csv_importer.import_csv_file(db, tmp_path / "missing.csv")
    assert result["success"] is False
    assert result["message"] == "File not found"


def test_upload_management():
    path = csv_importer.save_upload("my listings.csv", b"name\nA\n")
    assert path.name == "my_listings.csv"
    assert "my_listings.csv" in [f["name"] for f in csv_importer.list_uploads()]
    assert csv_importer.delete_upload("my_listings.csv") is True
    assert csv_importer.delete_upload("my_listings.csv") is False


@pytest.mark.parametrize("name", ["../secrets.csv", "notes.txt", ".hidden.csv", ""])
def test_safe_upload_path_rejects_bad_names(name):
    with pytest.raises(ValidationError):
        csv_importer.safe_upload_path(name)


def test_import_survives_non_finite_numbers(db):
    text = (
        "name,address,city,state,reviews,rating,latitude,longitude\n"
        "Good One,1 A St,Austin,TX,12,4.2,30.1,-97.1\n"
        "Bad One,2 B St,Austin,TX,inf,4.0,,\n"
        "Huge One,3 C St,Austin,TX,1e400,nan,1e400,-97.2\n"
    )
    result = csv_importer.import_csv_text(db, text)

    assert result["total"] == 3
    assert result["imported"] == 3
    assert result["errors"] == []
    bad = db.query(Laundromat).filter(Laundromat.name == "Bad One").one()
    assert bad.review_count is None
    huge = db.query(Laundromat).filter(Laundromat.name == "Huge One").one()
    assert huge.review_count is None
    assert huge.rating is None
    assert huge.latitude is None
