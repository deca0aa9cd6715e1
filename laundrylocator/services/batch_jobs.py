"""
In-process background jobs for CSV enrichment and database import.

Jobs live in memory only; a restart forgets them. Finished jobs are evicted
after BATCH_JOB_TTL_SECONDS, and the oldest finished jobs go first once more
than BATCH_JOB_MAX are tracked.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from laundrylocator.config import settings
from laundrylocator.core.logger import get_logger
from laundrylocator.database import SessionLocal
from laundrylocator.services import csv_importer, enricher

logger = get_logger(__name__)

JOB_STATUSES = ("pending", "processing", "completed", "failed")


@dataclass
class BatchJob:
    id: str
    kind: str
    file_name: str
    status: str = "pending"
    progress: int = 0
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.id,
            "kind": self.kind,
            "file_name": self.file_name,
            "status": self.status,
            "progress": self.progress,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class BatchJobRegistry:
    """Tracks jobs by id and runs them as asyncio tasks."""

    def __init__(self, ttl_seconds: Optional[int] = None, max_jobs: Optional[int] = None) -> None:
        self._jobs: Dict[str, BatchJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self.ttl = timedelta(seconds=settings.batch_job_ttl_seconds if ttl_seconds is None else ttl_seconds)
        self.max_jobs = max_jobs or settings.batch_job_max

    def get(self, job_id: str) -> Optional[BatchJob]:
        return self._jobs.get(job_id)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop expired finished jobs, then the oldest finished ones beyond the cap."""
        now = now or datetime.utcnow()
        finished = sorted(
            (job for job in self._jobs.values() if job.finished_at is not None),
            key=lambda job: job.finished_at,
        )
        expired = [job for job in finished if now - job.finished_at >= self.ttl]
        remaining = [job for job in finished if now - job.finished_at < self.ttl]
        # leave room for the job about to be created
        overflow = len(self._jobs) - len(expired) - self.max_jobs + 1
        expired.extend(remaining[:max(overflow, 0)])
        for job in expired:
            self._jobs.pop(job.id, None)
        return len(expired)

    def create(self, kind: str, file_name: str) -> BatchJob:
        self.prune()
        job = BatchJob(id=uuid.uuid4().hex, kind=kind, file_name=file_name)
        self._jobs[job.id] = job
        return job

    def submit_enrichment(self, path: Path) -> BatchJob:
        job = self.create("enrich", path.name)
        self._tasks[job.id] = asyncio.create_task(self._run_enrichment(job, path))
        return job

    def submit_import(self, path: Path) -> BatchJob:
        job = self.create("import", path.name)
        self._tasks[job.id] = asyncio.create_task(self._run_import(job, path))
        return job

    async def wait(self, job_id: str) -> Optional[BatchJob]:
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.get(job_id)

    async def _run_enrichment(self, job: BatchJob, path: Path) -> None:
        job.status = "processing"
        try:
            records = enricher.read_csv_records(path)
            unique, stats = enricher.dedupe_records(records)
            job.progress = 10
            await asyncio.sleep(0)

            chunk_size = settings.import_chunk_size
            total = len(unique) or 1
            enriched = []
            for start in range(0, len(unique), chunk_size):
                enriched.extend(enricher.enrich_batch(unique[start: start + chunk_size], stats))
                job.progress = 10 + int(min(len(enriched), total) * 80 / total)
                await asyncio.sleep(0)

            output = enricher.enriched_path_for(path, settings.enriched_dir)
            enricher.write_csv_records(output, enriched)
            job.result = {
                "success": True,
                "enriched_path": str(output),
                "stats": stats.as_dict(),
            }
            self._complete(job)
        except Exception as exc:
            self._fail(job, exc)

    async def _run_import(self, job: BatchJob, path: Path) -> None:
        job.status = "processing"
        db = SessionLocal()
        try:
            rows = csv_importer.parse_csv_bytes(path.read_bytes())

            def on_progress(percent: int) -> None:
                job.progress = percent

            result = await csv_importer.CSVImporter(db).run_async(rows, on_progress=on_progress)
            job.result = result.as_dict()
            self._complete(job)
        except Exception as exc:
            db.rollback()
            self._fail(job, exc)
        finally:
            db.close()

    def _complete(self, job: BatchJob) -> None:
        job.status = "completed"
        job.progress = 100
        job.finished_at = datetime.utcnow()
        self._tasks.pop(job.id, None)
        logger.info("Batch job %s (%s, %s) completed", job.id, job.kind, job.file_name)

    def _fail(self, job: BatchJob, exc: Exception) -> None:
        job.status = "failed"
        job.error = str(exc)
        job.finished_at = datetime.utcnow()
        self._tasks.pop(job.id, None)
        logger.exception("Batch job %s (%s, %s) failed: %s", job.id, job.kind, job.file_name, exc)


job_registry = BatchJobRegistry()
