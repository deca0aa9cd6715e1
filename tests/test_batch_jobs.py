import csv
from datetime import datetime, timedelta

import pytest

from laundrylocator.models import Laundromat
from laundrylocator.services.batch_jobs import BatchJobRegistry


def _write_csv(path, rows):
    with path.open("w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=["name", "address", "city", "state", "hours"])
        writer.writeheader()
        writer.writerows(rows)
    return path


ROWS = [
    {"name": "Clean Spin", "address": "100 Congress Ave", "city": "Austin", "state": "TX", "hours": "Open 24 hours"},
    {"name": "Clean Spin", "address": "100 Congress Ave", "city": "Austin", "state": "TX", "hours": ""},
    {"name": "Sud City", "address": "5 Main St", "city": "Dallas", "state": "TX", "hours": ""},
]


@pytest.mark.asyncio
async def test_import_job_completes(db, tmp_path):
    registry = BatchJobRegistry()
    job = registry.submit_import(_write_csv(tmp_path / "listings.csv", ROWS))
    assert job.status == "pending"
    assert job.kind == "import"

    finished = await registry.wait(job.id)

    assert finished.status == "completed"
    assert finished.progress == 100
    assert finished.result["imported"] == 2
    assert finished.result["duplicates"] == 1
    assert finished.finished_at is not None
    db.expire_all()
    assert db.query(Laundromat).count() == 2


@pytest.mark.asyncio
async def test_enrichment_job_writes_output(tmp_path):
    registry = BatchJobRegistry()
    job = registry.submit_enrichment(_write_csv(tmp_path / "raw.csv", ROWS))

    finished = await registry.wait(job.id)

    assert finished.status == "completed"
    assert finished.result["stats"]["total_records"] == 3
    assert finished.result["stats"]["duplicates_removed"] == 1
    assert finished.result["enriched_path"].endswith("raw_enriched.csv")
    data = finished.as_dict()
    assert data["job_id"] == job.id
    assert data["status"] == "completed"


@pytest.mark.asyncio
async def test_job_fails_on_missing_file(tmp_path):
    registry = BatchJobRegistry()
    job = registry.submit_enrichment(tmp_path / "gone.csv")

    finished = await registry.wait(job.id)

    assert finished.status == "failed"
    assert "gone.csv" in finished.error


def test_unknown_job():
    assert BatchJobRegistry().get("nope") is None


@pytest.mark.asyncio
async def test_enrichment_job_works_in_chunks(tmp_path, monkeypatch):
    from laundrylocator.config import settings
    from laundrylocator.services import batch_jobs, enricher

    monkeypatch.setattr(settings, "import_chunk_size", 1)
    registry = BatchJobRegistry()
    seen = []
    original = enricher.enrich_batch

    def recording_batch(rows, stats):
        seen.append((len(rows), registry.get(job.id).progress))
        return original(rows, stats)

    monkeypatch.setattr(batch_jobs.enricher, "enrich_batch", recording_batch)
    job = registry.submit_enrichment(_write_csv(tmp_path / "chunks.csv", ROWS))

    finished = await registry.wait(job.id)

    assert finished.status == "completed"
    assert seen == [(1, 10), (1, 50)]
    assert finished.result["stats"]["enriched_records"] == 2


def test_finished_jobs_are_pruned_after_ttl():
    registry = BatchJobRegistry(ttl_seconds=60, max_jobs=10)
    old = registry.create("import", "old.csv")
    old.finished_at = datetime.utcnow() - timedelta(minutes=5)
    running = registry.create("import", "running.csv")

    assert registry.prune() == 1
    assert registry.get(old.id) is None
    assert registry.get(running.id) is running


def test_registry_cap_evicts_oldest_finished_jobs():
    registry = BatchJobRegistry(ttl_seconds=3600, max_jobs=2)
    first = registry.create("enrich", "a.csv")
    first.finished_at = datetime.utcnow() - timedelta(seconds=30)
    second = registry.create("enrich", "b.csv")
    second.finished_at = datetime.utcnow()

    third = registry.create("enrich", "c.csv")

    assert registry.get(first.id) is None
    assert registry.get(second.id) is second
    assert registry.get(third.id) is third
