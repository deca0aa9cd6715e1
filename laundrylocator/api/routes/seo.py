"""
SEO API Routes
Page meta tags, city/state page content and XML sitemaps
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from laundrylocator.database import get_db
from laundrylocator.models import City, Laundromat, LaundryTip
from laundrylocator.services import directory, seo

router = APIRouter()
sitemap_router = APIRouter()

XML_MEDIA_TYPE = "application/xml"


@router.get("/meta")
async def meta_tags(
    page_type: str = Query(default="home", pattern="^(home|city|state|service|business)$"),
    location: Optional[str] = None,
    service: Optional[str] = None,
    qualifier: Optional[str] = None,
    path: str = "",
) -> Dict[str, Any]:
    return seo.generate_meta_tags(page_type, location=location, service=service, qualifier=qualifier, path=path)


@router.get("/city/{city_slug}")
async def city_content(city_slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    city = directory.resolve_city(db, city_slug)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return seo.city_page_content(city, directory.laundromats_in_city(db, city))


@router.get("/state/{state_slug}")
async def state_content(state_slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    state = directory.resolve_state(db, state_slug)
    if state is None:
        raise HTTPException(status_code=404, detail="State not found")
    cities = directory.cities_for_state(db, state.abbr)
    return seo.state_page_content(state, cities, directory.laundromats_in_state(db, state))


@sitemap_router.get("/sitemap.xml")
async def sitemap_index(db: Session = Depends(get_db)) -> Response:
    total = db.query(func.count(Laundromat.id)).scalar() or 0
    return Response(seo.sitemap_index_xml(seo.sitemap_index_urls(total)), media_type=XML_MEDIA_TYPE)


@sitemap_router.get("/sitemap-main.xml")
async def sitemap_main(db: Session = Depends(get_db)) -> Response:
    cities = db.query(City).filter(City.laundry_count > 0).order_by(City.laundry_count.desc()).all()
    tips = db.query(LaundryTip).order_by(LaundryTip.id).all()
    urls = seo.main_sitemap_urls(directory.list_states(db), cities, tips)
    return Response(seo.sitemap_xml(urls), media_type=XML_MEDIA_TYPE)


@sitemap_router.get("/sitemap-laundromats-{page}.xml")
async def sitemap_laundromats(page: int, db: Session = Depends(get_db)) -> Response:
    if page < 1:
        raise HTTPException(status_code=404, detail="Sitemap not found")
    rows = (
        db.query(Laundromat)
        .order_by(Laundromat.id)
        .offset((page - 1) * seo.SITEMAP_MAX_URLS)
        .limit(seo.SITEMAP_MAX_URLS)
        .all()
    )
    if not rows and page > 1:
        raise HTTPException(status_code=404, detail="Sitemap not found")
    return Response(seo.sitemap_xml(seo.laundromat_sitemap_urls(rows)), media_type=XML_MEDIA_TYPE)
