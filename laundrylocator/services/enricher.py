"""
Heuristic enrichment of scraped laundromat rows.

Rows are plain ``dict[str, str]`` as read from a CSV export (Outscraper or the
directory's own format). Enrichment derives SEO tags, a short summary, a default
description, a premium score and a premium-potential bucket, and drops rows
whose address was already seen earlier in the same batch.
"""
from __future__ import annotations

import csv
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from laundrylocator.core.exceptions import CSVImportError
from laundrylocator.core.logger import get_logger
from laundrylocator.services.slugs import slugify

logger = get_logger(__name__)

Record = Dict[str, Any]

SUMMARY_LIMIT = 145
DESCRIPTION_LIMIT = 395
LATE_CLOSING_HOUR = 21

_CLOSING_TIME = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE)


def _text(record: Record, key: str) -> str:
    value = record.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        match = re.search(r"\d+(?:\.\d+)?", str(value))
        number = float(match.group(0)) if match else None
    if number is None or not math.isfinite(number):
        return None
    return number


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(str(value).replace(",", "")) if value not in (None, "") else None
    return int(number) if number is not None else None


def split_tags(tags: Any) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, (list, tuple, set)):
        return [str(t).strip() for t in tags if str(t).strip()]
    return [t.strip() for t in str(tags).split(",") if t.strip()]


def normalize_business_name(name: str) -> str:
    name = (name or "").strip()
    if name and name == name.upper() and any(ch.isalpha() for ch in name):
        name = name[0].upper() + name[1:].lower()
    name = re.sub(r"\s+-\s+[A-Z]{2}$", "", name)
    return re.sub(r"\s{2,}", " ", name).strip()


def _closes_late(hours: str) -> bool:
    for part in hours.split(";"):
        closing = re.split(r"[–-]", part)[-1].strip()
        match = _CLOSING_TIME.search(closing)
        if not match:
            continue
        hour = int(match.group(1))
        meridiem = match.group(3).lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        elif meridiem == "am" and (hour == 12 or hour < 5):
            # closing at or after midnight
            hour += 24 if hour < 12 else 12
        if hour >= LATE_CLOSING_HOUR:
            return True
    return False


def generate_seo_tags(record: Record) -> List[str]:
    """Derive service/hour tags from the name, categories, description and hours text."""
    tags: List[str] = []

    def add(tag: str) -> None:
        if tag not in tags:
            tags.append(tag)

    name_and_categories = f"{_text(record, 'name')} {_text(record, 'categories')}".lower()
    description = _text(record, "description").lower()
    hours = _text(record, "hours").lower()

    if "open 24 hours" in hours or "24 hours" in hours or "24/7" in hours:
        add("24 hour")

    if any(word in text for text in (name_and_categories, description) for word in ("coin", "self-service")):
        add("coin laundry")
        add("self-service")

    if "drop" in name_and_categories or "drop" in description or "service" in name_and_categories:
        add("drop-off")

    if "pickup" in description or "pickup" in name_and_categories:
        add("pickup")

    if "delivery" in description or "delivery" in name_and_categories:
        add("delivery")

    if (
        "eco" in description
        or "environment" in description
        or "eco" in name_and_categories
        or "green" in name_and_categories
    ):
        add("eco-friendly")

    if hours and _closes_late(hours):
        add("open late")

    return tags


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def generate_short_summary(record: Record) -> str:
    tags = split_tags(record.get("seo_tags"))
    rating = _to_float(record.get("rating"))

    if "coin laundry" in tags:
        summary = "Convenient coin-operated laundromat"
    elif "drop-off" in tags:
        summary = "Professional laundry service with drop-off options"
    else:
        summary = "Local laundromat offering washing and drying services"

    if rating is not None and rating >= 4.0:
        summary += f" with {rating:g}-star rating"

    if "pickup" in tags and "delivery" in tags:
        summary += ". Pickup and delivery available"
    elif "pickup" in tags:
        summary += ". Pickup service available"
    elif "delivery" in tags:
        summary += ". Delivery service available"

    if "24 hour" in tags:
        summary += ". Open 24 hours"
    elif "open late" in tags:
        summary += ". Open late for convenience"

    if "eco-friendly" in tags:
        summary += ". Eco-friendly practices"

    return _truncate(summary, SUMMARY_LIMIT)


def _locality(record: Record) -> str:
    city = _text(record, "city")
    state = _text(record, "state")
    if city:
        return f"{city}, {state}" if state else city
    parts = [p.strip() for p in _text(record, "address").split(",") if p.strip()]
    if not parts:
        return "the area"
    return parts[-2] if len(parts) >= 2 else parts[0]


def generate_default_description(record: Record) -> str:
    existing = _text(record, "description")
    if len(existing) > 50:
        return existing

    tags = split_tags(record.get("seo_tags"))
    description = f"{_text(record, 'name')} is a "

    if "coin laundry" in tags and "self-service" in tags:
        description += "self-service coin laundromat "
    elif "drop-off" in tags:
        description += "full-service laundry establishment "
    else:
        description += "laundromat "

    description += f"located in {_locality(record)}. "

    services = []
    if "drop-off" in tags:
        services.append("drop-off service")
    if "pickup" in tags:
        services.append("pickup service")
    if "delivery" in tags:
        services.append("delivery options")
    if services:
        description += f"They offer {', '.join(services)} "
        if len(services) == 1:
            description += "to save you time. "
        else:
            description += "to make your laundry experience convenient. "

    if "24 hour" in tags:
        description += "Open 24 hours a day for your convenience. "
    elif "open late" in tags:
        description += "Extended hours to accommodate your busy schedule. "

    rating = _to_float(record.get("rating"))
    review_count = _to_int(record.get("review_count"))
    if rating is not None and review_count:
        if rating >= 4.5 and review_count > 20:
            description += f"Highly rated with {rating:g} stars from {review_count} satisfied customers. "
        elif rating >= 4.0:
            description += f"Well-reviewed with a {rating:g}-star rating. "

    description += "Visit today for a clean, efficient laundry experience."
    return _truncate(description, DESCRIPTION_LIMIT)


def calculate_premium_score(record: Record) -> int:
    score = 0
    if _text(record, "photos"):
        score += 30
    if _text(record, "logo"):
        score += 10
    if _text(record, "website"):
        score += 10

    rating = _to_float(record.get("rating"))
    if rating is not None and rating >= 4.5:
        score += 20
    elif rating is not None and rating >= 4.0:
        score += 10

    reviews = _to_int(record.get("review_count"))
    if reviews is not None and reviews > 200:
        score += 10
    elif reviews is not None and reviews > 50:
        score += 5

    if len(split_tags(record.get("seo_tags"))) >= 3:
        score += 10

    return min(score, 100)


def assess_premium_potential(score: int) -> str:
    if score >= 60:
        return "High"
    if score >= 35:
        return "Medium"
    return "Low"


def normalize_address(address: str) -> str:
    return re.sub(r"\s+", " ", (address or "").lower().strip())


def find_duplicates(records: List[Record]) -> Set[int]:
    """Indexes of rows whose address repeats one seen earlier in the list."""
    seen: Set[str] = set()
    duplicates: Set[int] = set()
    for index, record in enumerate(records):
        address = normalize_address(_text(record, "address"))
        if not address:
            continue
        if address in seen:
            duplicates.add(index)
        else:
            seen.add(address)
    return duplicates


def enrich_record(record: Record) -> Record:
    enriched = dict(record)
    enriched["name"] = normalize_business_name(_text(record, "name"))
    enriched["seo_tags"] = ", ".join(generate_seo_tags(enriched))
    enriched["slugified_name"] = slugify(enriched["name"])
    enriched["premium_score"] = calculate_premium_score(enriched)
    enriched["short_summary"] = generate_short_summary(enriched)
    if not _text(record, "description"):
        enriched["default_description"] = generate_default_description(enriched)
    enriched["premium_potential"] = assess_premium_potential(enriched["premium_score"])
    return enriched


@dataclass
class EnrichmentStats:
    total_records: int = 0
    enriched_records: int = 0
    duplicates_removed: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "enriched_records": self.enriched_records,
            "duplicates_removed": self.duplicates_removed,
            "errors": list(self.errors),
        }


def dedupe_records(records: Iterable[Record]) -> tuple[List[Record], EnrichmentStats]:
    rows = list(records)
    stats = EnrichmentStats(total_records=len(rows))
    duplicates = find_duplicates(rows)
    stats.duplicates_removed = len(duplicates)
    return [row for index, row in enumerate(rows) if index not in duplicates], stats


def enrich_batch(rows: Iterable[Record], stats: EnrichmentStats) -> List[Record]:
    """Enrich already-deduplicated rows, recording failures on ``stats``."""
    output: List[Record] = []
    for record in rows:
        try:
            output.append(enrich_record(record))
            stats.enriched_records += 1
        except Exception as exc:
            stats.errors.append(f"Error enriching record {record.get('name') or 'unknown'}: {exc}")
            output.append(record)
    return output


def enrich_records(records: Iterable[Record]) -> tuple[List[Record], EnrichmentStats]:
    unique, stats = dedupe_records(records)
    return enrich_batch(unique, stats), stats


def read_csv_records(path: Path) -> List[Record]:
    try:
        with path.open(newline="", encoding="utf-8-sig") as handle:
            reader = csv.DictReader(handle)
            return [
                {(k or "").strip(): (v or "").strip() for k, v in row.items() if k is not None}
                for row in reader
                if any((v or "").strip() for v in row.values() if isinstance(v, str))
            ]
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise CSVImportError(f"Could not read {path.name}: {exc}") from exc


def write_csv_records(path: Path, records: List[Record]) -> None:
    fieldnames: List[str] = []
    for record in records:
        for key in record:
            if key not in fieldnames:
                fieldnames.append(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for record in records:
            writer.writerow(record)


def enriched_path_for(input_path: Path, output_dir: Optional[Path] = None) -> Path:
    directory = output_dir or input_path.parent
    return directory / f"{input_path.stem}_enriched.csv"


def enrich_csv_file(input_path: Path, output_path: Optional[Path] = None) -> Dict[str, Any]:
    """Read a CSV, enrich and dedupe its rows and write ``<name>_enriched.csv``."""
    output_path = output_path or enriched_path_for(input_path)
    records = read_csv_records(input_path)
    enriched, stats = enrich_records(records)
    write_csv_records(output_path, enriched)
    logger.info(
        "Enriched %s: %s records, %s duplicates removed -> %s",
        input_path.name,
        stats.enriched_records,
        stats.duplicates_removed,
        output_path,
    )
    return {
        "success": True,
        "message": (
            f"Successfully enriched {stats.enriched_records} records, "
            f"removed {stats.duplicates_removed} duplicates."
        ),
        "enriched_path": str(output_path),
        "stats": stats.as_dict(),
    }
