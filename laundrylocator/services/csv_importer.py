"""
CSV import of laundromat listings.

Accepts the directory's own column layout as well as Outscraper-style Google
Maps exports, normalises each row, enriches it, skips duplicates and inserts
listings in chunks.
"""
from __future__ import annotations

import asyncio
import csv
import io
import json
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from laundrylocator.config import settings
from laundrylocator.core.exceptions import CSVImportError, ValidationError
from laundrylocator.core.logger import get_logger
from laundrylocator.models import Laundromat
from laundrylocator.services import directory
from laundrylocator.services.enricher import enrich_record, normalize_address, split_tags

logger = get_logger(__name__)

COLUMN_ALIASES: Dict[str, tuple[str, ...]] = {
    "name": ("name", "title", "business_name"),
    "address": ("address", "street", "street_address", "full_address"),
    "city": ("city", "locality"),
    "state": ("state", "us_state", "state_code", "region"),
    "zip": ("zip", "postal_code", "zipcode", "zip_code"),
    "phone": ("phone", "phone_number", "phone_1"),
    "website": ("website", "site", "url"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lng", "lon"),
    "rating": ("rating",),
    "review_count": ("review_count", "reviews", "reviews_count"),
    "hours": ("hours", "working_hours", "opening_hours"),
    "categories": ("categories", "category", "subtypes", "type"),
    "description": ("description", "about"),
    "photos": ("photos", "photo", "photos_url"),
    "logo": ("logo",),
    "services": ("services",),
    "amenities": ("amenities",),
}

_STATE_ZIP = re.compile(r"^(?P<state>[A-Za-z]{2}|[A-Za-z .]+?)\s*(?P<zip>\d{5}(?:-\d{4})?)?$")


@dataclass
class ImportResult:
    total: int = 0
    imported: int = 0
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True
    message: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total": self.total,
            "imported": self.imported,
            "duplicates": self.duplicates,
            "errors": list(self.errors),
            "message": self.message
            or (
                f"Processed {self.total} records: {self.imported} imported, "
                f"{self.duplicates} duplicates, {len(self.errors)} errors"
            ),
        }


def parse_csv_text(text: str) -> List[Dict[str, str]]:
    try:
        reader = csv.DictReader(io.StringIO(text.lstrip("﻿")))
        rows = []
        for raw in reader:
            row = {
                (k or "").strip().lower(): (v or "").strip()
                for k, v in raw.items()
                if k is not None and isinstance(v, (str, type(None)))
            }
            if any(row.values()):
                rows.append(row)
        return rows
    except csv.Error as exc:
        raise CSVImportError(f"Malformed CSV: {exc}") from exc


def parse_csv_bytes(content: bytes) -> List[Dict[str, str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    return parse_csv_text(text)


def _pick(row: Dict[str, str], key: str) -> str:
    for alias in COLUMN_ALIASES[key]:
        value = row.get(alias)
        if value:
            return value.strip()
    return ""


def split_full_address(full_address: str) -> Dict[str, str]:
    """Split ``"123 Main St, Austin, TX 78701"`` into street/city/state/zip parts."""
    parts = [p.strip() for p in (full_address or "").split(",") if p.strip()]
    if parts and parts[-1].lower() in {"united states", "usa", "us"}:
        parts = parts[:-1]
    result = {"address": parts[0] if parts else "", "city": "", "state": "", "zip": ""}
    if len(parts) >= 3:
        result["city"] = parts[-2]
        match = _STATE_ZIP.match(parts[-1])
        if match:
            result["state"] = match.group("state").strip()
            result["zip"] = match.group("zip") or ""
        else:
            result["state"] = parts[-1]
    elif len(parts) == 2:
        result["city"] = parts[1]
    return result


def format_hours(value: str) -> str:
    """Flatten a JSON object of ``day -> hours`` into ``"Monday: 6AM-10PM; ..."``."""
    text = (value or "").strip()
    if not text.startswith("{"):
        return text
    try:
        data = json.loads(text.replace("'", '"'))
    except json.JSONDecodeError:
        return text
    chunks = []
    for day, hours in data.items():
        if isinstance(hours, list):
            hours = ", ".join(str(h) for h in hours)
        chunks.append(f"{day}: {hours}")
    return "; ".join(chunks)


def normalize_row(row: Dict[str, str]) -> Dict[str, Any]:
    """Map a raw CSV row (any supported layout) to directory field names."""
    record: Dict[str, Any] = {key: _pick(row, key) for key in COLUMN_ALIASES}

    full_address = row.get("full_address", "")
    if full_address and (not record["city"] or not record["state"] or record["address"] == full_address):
        parsed = split_full_address(full_address)
        if record["address"] == full_address or not record["address"]:
            record["address"] = parsed["address"]
        record["city"] = record["city"] or parsed["city"]
        record["state"] = record["state"] or parsed["state"]
        record["zip"] = record["zip"] or parsed["zip"]

    gps = row.get("gps_coordinates", "")
    if gps and (not record["latitude"] or not record["longitude"]):
        pieces = [p.strip() for p in gps.split(",")]
        if len(pieces) == 2:
            record["latitude"], record["longitude"] = pieces

    record["hours"] = format_hours(record["hours"])
    record["state"] = directory.normalize_state(record["state"])
    return record


def build_listing(record: Dict[str, Any]) -> Dict[str, Any]:
    """Enrich a normalised record and shape it for ``directory.create_laundromat``."""
    enriched = enrich_record(record)
    tags = split_tags(enriched.get("seo_tags"))
    services = split_tags(record.get("services")) or list(tags)
    photos = [p for p in split_tags(record.get("photos")) if p.startswith("http")]

    def number(value: Any) -> Optional[float]:
        try:
            converted = float(value) if value not in (None, "") else None
        except ValueError:
            return None
        return converted if converted is not None and math.isfinite(converted) else None

    rating = number(record.get("rating"))
    review_count = number(str(record.get("review_count") or "").replace(",", ""))

    return {
        "name": enriched["name"],
        "address": record["address"],
        "city": record["city"],
        "state": record["state"],
        "zip": record.get("zip") or "",
        "phone": record.get("phone") or "",
        "website": record.get("website") or None,
        "latitude": number(record.get("latitude")),
        "longitude": number(record.get("longitude")),
        "rating": rating,
        "review_count": int(review_count) if review_count is not None else None,
        "hours": record.get("hours") or "Not specified",
        "services": services,
        "amenities": split_tags(record.get("amenities")),
        "photos": photos,
        "image_url": photos[0] if photos else None,
        "description": record.get("description") or enriched.get("default_description"),
        "seo_tags": tags,
        "short_summary": enriched.get("short_summary"),
        "premium_score": enriched.get("premium_score", 0),
    }


class CSVImporter:
    """Imports normalised rows into the database chunk by chunk."""

    def __init__(self, db: Session, chunk_size: Optional[int] = None):
        self.db = db
        self.chunk_size = chunk_size or settings.import_chunk_size
        self.result = ImportResult()
        self._seen_addresses: set[str] = set()
        self._reserved_slugs: set[str] = set()

    def _is_duplicate(self, listing: Dict[str, Any]) -> bool:
        key = f"{normalize_address(listing['address'])}|{listing['city'].lower()}"
        if key in self._seen_addresses:
            return True
        self._seen_addresses.add(key)
        existing = (
            self.db.query(Laundromat.id)
            .filter(
                func.lower(Laundromat.address) == normalize_address(listing["address"]),
                func.lower(Laundromat.city) == listing["city"].lower(),
            )
            .first()
        )
        return existing is not None

    def process_chunk(self, rows: List[Dict[str, str]], offset: int = 0) -> None:
        pending = 0
        for index, raw in enumerate(rows, start=offset + 1):
            self.result.total += 1
            try:
                record = normalize_row(raw)
                missing = [k for k in ("name", "address", "city", "state") if not record.get(k)]
                if missing:
                    self.result.errors.append(f"Row {index}: missing required fields {', '.join(missing)}")
                    continue
                listing = build_listing(record)
                if self._is_duplicate(listing):
                    self.result.duplicates += 1
                    continue
                directory.create_laundromat(
                    self.db, listing, commit=False, reserved_slugs=self._reserved_slugs
                )
                pending += 1
            except (ValidationError, ValueError, ArithmeticError) as exc:
                self.result.errors.append(f"Row {index}: {exc}")

        try:
            self.db.commit()
            self.result.imported += pending
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Chunk commit failed at row %s", offset + 1)
            self.result.errors.append(f"Rows {offset + 1}-{offset + len(rows)}: database error {exc}")

    def chunks(self, rows: List[Dict[str, str]]) -> Iterable[tuple[int, List[Dict[str, str]]]]:
        for start in range(0, len(rows), self.chunk_size):
            yield start, rows[start: start + self.chunk_size]

    def run(self, rows: List[Dict[str, str]]) -> ImportResult:
        for start, chunk in self.chunks(rows):
            self.process_chunk(chunk, offset=start)
        self._finish()
        return self.result

    async def run_async(
        self,
        rows: List[Dict[str, str]],
        on_progress: Optional[Callable[[int], Awaitable[None] | None]] = None,
    ) -> ImportResult:
        total = len(rows) or 1
        for start, chunk in self.chunks(rows):
            self.process_chunk(chunk, offset=start)
            if on_progress is not None:
                outcome = on_progress(min(99, int((start + len(chunk)) * 100 / total)))
                if asyncio.iscoroutine(outcome):
                    await outcome
            await asyncio.sleep(0)
        self._finish()
        return self.result

    def _finish(self) -> None:
        logger.info(
            "CSV import finished: total=%s imported=%s duplicates=%s errors=%s",
            self.result.total,
            self.result.imported,
            self.result.duplicates,
            len(self.result.errors),
        )


def import_csv_text(db: Session, text: str, chunk_size: Optional[int] = None) -> Dict[str, Any]:
    rows = parse_csv_text(text)
    return CSVImporter(db, chunk_size=chunk_size).run(rows).as_dict()


def import_csv_file(db: Session, path: Path, chunk_size: Optional[int] = None) -> Dict[str, Any]:
    if not path.exists():
        return ImportResult(
            success=False, errors=[f"File not found: {path.name}"], message="File not found"
        ).as_dict()
    return import_csv_text(db, path.read_bytes().decode("utf-8-sig", errors="replace"), chunk_size)


# Uploaded file management --------------------------------------------------


def _upload_dir() -> Path:
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    return settings.upload_dir


def safe_upload_path(filename: str, directory_path: Optional[Path] = None) -> Path:
    """Resolve a bare CSV filename inside the upload directory, rejecting path traversal."""
    name = (filename or "").strip()
    if not name or Path(name).name != name or name.startswith("."):
        raise ValidationError("Invalid file name")
    if not name.lower().endswith(".csv"):
        raise ValidationError("File must be a CSV")
    return (directory_path or _upload_dir()) / name


def save_upload(filename: str, content: bytes) -> Path:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", Path(filename or "upload.csv").name)
    path = safe_upload_path(cleaned)
    path.write_bytes(content)
    logger.info("Saved uploaded CSV %s (%s bytes)", path.name, len(content))
    return path


def list_uploads() -> List[Dict[str, Any]]:
    files = []
    for path in sorted(_upload_dir().glob("*.csv")):
        stat = path.stat()
        files.append({"name": path.name, "size": stat.st_size, "modified": stat.st_mtime})
    return files


def delete_upload(filename: str) -> bool:
    path = safe_upload_path(filename)
    if not path.exists():
        return False
    path.unlink()
    return True
