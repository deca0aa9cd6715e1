"""
LaundryLocator - FastAPI Application
Laundromat directory API with premium listings, CSV import and SEO endpoints
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from laundrylocator.api.routes import (
    auth,
    business,
    csv_import,
    enrichment,
    health,
    laundromats,
    locations,
    maps,
    reviews,
    seo,
    subscriptions,
    tips,
)
from laundrylocator.config import settings
from laundrylocator.core.logger import configure_logging, get_logger
from laundrylocator.core.security import require_admin
from laundrylocator.database import init_db
from laundrylocator.services.subscription_scheduler import SubscriptionScheduler

configure_logging(settings.log_level)
logger = get_logger(__name__)
scheduler = SubscriptionScheduler(
    settings.expiry_check_cron, poll_seconds=settings.scheduler_poll_seconds
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    try:
        init_db()
        logger.info("Database initialized")
    except Exception as exc:
        logger.exception("Database initialization failed: %s", exc)

    logger.info("API running on %s environment", settings.app_env)
    if settings.scheduler_enabled:
        scheduler.start()
        app.state.subscription_scheduler = scheduler
    yield
    if settings.scheduler_enabled:
        await scheduler.stop()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Backend API for the LaundryLocator laundromat directory",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.utcnow().isoformat(),
    }


api = settings.api_prefix
admin_only = [Depends(require_admin)]

app.include_router(health.router, prefix=api, tags=["Health"])
app.include_router(auth.router, prefix=f"{api}/auth", tags=["Auth"])
app.include_router(laundromats.router, prefix=f"{api}/laundromats", tags=["Laundromats"])
app.include_router(reviews.router, prefix=api, tags=["Reviews"])
app.include_router(locations.router, prefix=api, tags=["Locations"])
app.include_router(subscriptions.router, prefix=api, tags=["Subscriptions"])
app.include_router(
    csv_import.router, prefix=f"{api}/csv", tags=["CSV Import"], dependencies=admin_only
)
app.include_router(enrichment.router, prefix=api, tags=["Enrichment"], dependencies=admin_only)
app.include_router(seo.router, prefix=f"{api}/seo", tags=["SEO"])
app.include_router(maps.router, prefix=f"{api}/maps", tags=["Maps"])
app.include_router(business.router, prefix=api, tags=["Business"])
app.include_router(tips.router, prefix=f"{api}/laundry-tips", tags=["Laundry Tips"])
app.include_router(seo.sitemap_router, tags=["Sitemaps"])
