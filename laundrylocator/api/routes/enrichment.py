"""
Enrichment and Batch Job API Routes (admin only)
"""
from pathlib import Path
from typing import Any, Dict, Iterator, Literal

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from laundrylocator.api.dependencies import http_error
from laundrylocator.config import settings
from laundrylocator.core.exceptions import AppError
from laundrylocator.schemas.csv_import import FileRequest
from laundrylocator.services import csv_importer, enricher
from laundrylocator.services.batch_jobs import job_registry

router = APIRouter()


def _existing_upload(file_name: str):
    try:
        path = csv_importer.safe_upload_path(file_name)
    except AppError as exc:
        raise http_error(exc) from exc
    if not path.exists():
        raise HTTPException(status_code=404, detail="File not found")
    return path


@router.post("/laundry/enrich")
async def enrich_file(payload: FileRequest) -> Dict[str, Any]:
    """
    Enrich an uploaded CSV and write <name>_enriched.csv
    """
    path = _existing_upload(payload.file_name)
    output = enricher.enriched_path_for(path, settings.enriched_dir)
    try:
        return enricher.enrich_csv_file(path, output)
    except AppError as exc:
        raise http_error(exc) from exc


@router.post("/laundry/batch-enrich", status_code=202)
async def batch_enrich(payload: FileRequest) -> Dict[str, Any]:
    job = job_registry.submit_enrichment(_existing_upload(payload.file_name))
    return job.as_dict()


@router.get("/laundry/batch-status/{job_id}")
async def batch_enrich_status(job_id: str) -> Dict[str, Any]:
    job = job_registry.get(job_id)
    if job is None or job.kind != "enrich":
        raise HTTPException(status_code=404, detail="Job not found")
    return job.as_dict()


@router.post("/admin/database-import", status_code=202)
async def database_import(payload: FileRequest) -> Dict[str, Any]:
    job = job_registry.submit_import(_existing_upload(payload.file_name))
    return job.as_dict()


@router.get("/admin/import-status/{job_id}")
async def database_import_status(job_id: str) -> Dict[str, Any]:
    job = job_registry.get(job_id)
    if job is None or job.kind != "import":
        raise HTTPException(status_code=404, detail="Job not found")
    return job.as_dict()


def _read_chunks(path: Path, size: int = 64 * 1024) -> Iterator[bytes]:
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(size)
            if not chunk:
                break
            yield chunk


@router.get("/files/download")
async def download_file(
    file_name: str = Query(..., min_length=1),
    source: Literal["enriched", "uploads"] = "enriched",
) -> StreamingResponse:
    """
    Stream an enriched (or uploaded) CSV back as an attachment
    """
    directory_path = settings.enriched_dir if source == "enriched" else settings.upload_dir
    try:
        path = csv_importer.safe_upload_path(file_name, directory_path)
    except AppError as exc:
        raise http_error(exc) from exc
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return StreamingResponse(
        _read_chunks(path),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{path.name}"'},
    )
