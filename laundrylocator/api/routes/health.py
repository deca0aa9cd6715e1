"""
Health API Routes
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from laundrylocator.config import settings
from laundrylocator.database import check_database_connection, database_health

router = APIRouter()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Application and database health"""
    db = database_health()
    ok = bool(db.get("ok")) and check_database_connection()
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "environment": settings.app_env,
            "database": db,
            "integrations": {
                "stripe": settings.stripe_enabled,
                "google_maps": bool(
                    settings.google_maps_api_key and settings.google_maps_api_key.get_secret_value()
                ),
            },
        },
    )
