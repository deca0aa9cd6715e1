"""
CSV Import API Routes
Upload, list, delete and import CSV files of listings (admin only)
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from laundrylocator.api.dependencies import http_error
from laundrylocator.core.exceptions import AppError
from laundrylocator.core.logger import get_logger
from laundrylocator.database import get_db
from laundrylocator.schemas.csv_import import FileRequest
from laundrylocator.services import csv_importer

router = APIRouter()
logger = get_logger(__name__)


@router.get("/list")
async def list_files() -> List[Dict[str, Any]]:
    return csv_importer.list_uploads()


@router.post("/upload")
async def upload_file(file: UploadFile = File(...)) -> Dict[str, Any]:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File is empty")
    try:
        path = csv_importer.save_upload(file.filename, content)
    except AppError as exc:
        raise http_error(exc) from exc
    return {"success": True, "file_name": path.name, "size": len(content)}


@router.post("/import")
async def import_file(payload: FileRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Import an uploaded CSV into the directory synchronously
    """
    try:
        path = csv_importer.safe_upload_path(payload.file_name)
        if not path.exists():
            raise HTTPException(status_code=404, detail="File not found")
        return csv_importer.import_csv_file(db, path)
    except AppError as exc:
        db.rollback()
        raise http_error(exc) from exc


@router.post("/delete")
async def delete_file(payload: FileRequest) -> Dict[str, Any]:
    try:
        deleted = csv_importer.delete_upload(payload.file_name)
    except AppError as exc:
        raise http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="File not found")
    logger.info("Deleted uploaded CSV %s", payload.file_name)
    return {"success": True}
