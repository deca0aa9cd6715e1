"""
SEO helpers: page meta tags, schema.org JSON-LD, city/state page copy and sitemaps.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from xml.sax.saxutils import escape

from laundrylocator.config import settings
from laundrylocator.models import City, Laundromat, LaundryTip, State

SITEMAP_MAX_URLS = 10000
MAX_SCHEMA_REVIEWS = 5
ALL_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
TITLE_SUFFIX = " | Laundromat Directory"


def _site_url() -> str:
    return settings.site_url


def listing_url(slug: str) -> str:
    return f"{_site_url()}/laundromat/{slug}"


def is_24_hour(hours: Optional[str]) -> bool:
    text = (hours or "").lower()
    return "24 hour" in text or "24/7" in text


def generate_meta_tags(
    page_type: str,
    location: Optional[str] = None,
    service: Optional[str] = None,
    qualifier: Optional[str] = None,
    path: str = "",
) -> Dict[str, Any]:
    """Title, description, canonical URL, keywords and Open Graph tags for a page."""
    prefix = f"{qualifier} " if qualifier else ""
    location_text = f"in {location}" if location else "Near Me"

    if page_type == "city":
        title = f"{prefix}{service or 'Laundromats'} {location_text}{TITLE_SUFFIX}"
        description = (
            f"Discover {prefix}{service or 'laundromats'} {location_text if location else 'near you'}. "
            "Compare pricing, amenities, and reviews for all local laundry facilities in your area."
        )
    elif page_type == "state":
        title = f"Top Laundromats in {location}{TITLE_SUFFIX}"
        description = (
            f"Comprehensive directory of laundromats across {location}. Find locations with "
            "coin-operated machines, drop-off service, and more."
        )
    elif page_type == "service":
        title = f"{prefix}{service or 'Laundromats'} {location_text}{TITLE_SUFFIX}"
        description = (
            f"Find {prefix}{service or 'laundromats'} {location_text if location else 'near you'}. "
            "Sort by distance, ratings, and amenities to find the best option for your laundry needs."
        )
    elif page_type == "business":
        title = f"{location} - Hours, Services & Reviews{TITLE_SUFFIX}"
        description = (
            f"View hours, services, prices, and customer reviews for {location}. Get directions and "
            "see if they offer wash and fold, drop-off, or self-service options."
        )
    else:
        title = f"Find Laundromats Near Me{TITLE_SUFFIX}"
        description = (
            "Find clean, affordable laundromats near you. Compare prices, hours, services, and "
            "reviews to find the perfect place for laundry day."
        )

    keywords = ["laundromat near me", "coin laundry", "self-service laundry", "wash and fold"]
    if location:
        keywords.insert(0, f"laundromats in {location}")
    if service:
        keywords.insert(0, service.lower())

    canonical = f"{_site_url()}/{path.lstrip('/')}" if path else _site_url()
    return {
        "title": title,
        "description": description,
        "canonical": canonical,
        "keywords": ", ".join(keywords),
        "og": {
            "og:title": title,
            "og:description": description,
            "og:url": canonical,
            "og:type": "business.business" if page_type == "business" else "website",
            "og:site_name": settings.site_name,
        },
    }


def opening_hours_specification(hours: Optional[str]) -> List[Dict[str, Any]]:
    opens, closes = ("00:00", "23:59") if is_24_hour(hours) else ("09:00", "21:00")
    return [
        {
            "@type": "OpeningHoursSpecification",
            "dayOfWeek": list(ALL_DAYS),
            "opens": opens,
            "closes": closes,
        }
    ]


def laundromat_schema(laundromat: Laundromat, reviews: Sequence[Any] = ()) -> Dict[str, Any]:
    """schema.org ``LaundryOrDryCleaner`` JSON-LD for a single listing."""
    url = listing_url(laundromat.slug)
    services = list(laundromat.services or [])
    schema: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "LaundryOrDryCleaner",
        "@id": f"{url}#business",
        "name": laundromat.name,
        "url": url,
        "telephone": laundromat.phone or None,
        "description": laundromat.description or laundromat.short_summary,
        "address": {
            "@type": "PostalAddress",
            "streetAddress": laundromat.address,
            "addressLocality": laundromat.city,
            "addressRegion": laundromat.state,
            "postalCode": laundromat.zip,
            "addressCountry": "US",
        },
        "openingHoursSpecification": opening_hours_specification(laundromat.hours),
        "priceRange": "$$",
        "sameAs": [laundromat.website] if laundromat.website else [],
        "makesOffer": [
            {"@type": "Offer", "itemOffered": {"@type": "Service", "name": service}}
            for service in services
        ],
    }
    if laundromat.latitude is not None and laundromat.longitude is not None:
        schema["geo"] = {
            "@type": "GeoCoordinates",
            "latitude": laundromat.latitude,
            "longitude": laundromat.longitude,
        }
        schema["hasMap"] = (
            "https://www.google.com/maps/dir/?api=1&destination="
            f"{laundromat.latitude},{laundromat.longitude}"
        )
    if laundromat.image_url:
        schema["image"] = laundromat.image_url
    if laundromat.rating:
        schema["aggregateRating"] = {
            "@type": "AggregateRating",
            "ratingValue": laundromat.rating,
            "bestRating": "5",
            "worstRating": "1",
            "ratingCount": laundromat.review_count or 0,
            "reviewCount": laundromat.review_count or 0,
        }
    if reviews:
        schema["review"] = [
            {
                "@type": "Review",
                "reviewRating": {"@type": "Rating", "ratingValue": review.rating, "bestRating": "5"},
                "reviewBody": review.comment or "",
                "datePublished": review.created_at.date().isoformat() if review.created_at else None,
                "author": {"@type": "Person", "name": f"User {review.user_id}"},
            }
            for review in list(reviews)[:MAX_SCHEMA_REVIEWS]
        ]
    return schema


def listing_list_schema(laundromats: Iterable[Laundromat]) -> Dict[str, Any]:
    items = []
    for position, laundromat in enumerate(laundromats, start=1):
        items.append(
            {
                "@type": "ListItem",
                "position": position,
                "item": {
                    "@type": "LocalBusiness",
                    "name": laundromat.name,
                    "url": listing_url(laundromat.slug),
                    "address": {
                        "@type": "PostalAddress",
                        "streetAddress": laundromat.address,
                        "addressLocality": laundromat.city,
                        "addressRegion": laundromat.state,
                        "postalCode": laundromat.zip,
                        "addressCountry": "US",
                    },
                },
            }
        )
    return {"@context": "https://schema.org", "@type": "ItemList", "itemListElement": items}


def breadcrumb_schema(items: Sequence[tuple[str, str]]) -> Dict[str, Any]:
    """``items`` are ``(name, path)`` pairs from the home page down."""
    return {
        "@context": "https://schema.org",
        "@type": "BreadcrumbList",
        "itemListElement": [
            {
                "@type": "ListItem",
                "position": position,
                "name": name,
                "item": f"{_site_url()}/{path.lstrip('/')}" if path else _site_url(),
            }
            for position, (name, path) in enumerate(items, start=1)
        ],
    }


def _average_rating(laundromats: Sequence[Laundromat]) -> float:
    if not laundromats:
        return 0.0
    return sum(float(l.rating or 0) for l in laundromats) / len(laundromats)


def _popular_services(laundromats: Sequence[Laundromat], limit: int = 5) -> List[str]:
    counts: Counter = Counter()
    for laundromat in laundromats:
        counts.update(laundromat.services or [])
    return [service for service, _ in counts.most_common(limit)]


def city_page_content(city: City, laundromats: Sequence[Laundromat]) -> Dict[str, Any]:
    total = len(laundromats)
    average = _average_rating(laundromats)
    services = _popular_services(laundromats)
    has_24_hour = any(is_24_hour(l.hours) for l in laundromats)
    highlighted = ", ".join(services[:3]) or "self-service washers and dryers"
    hours_phrase = "including 24-hour options" if has_24_hour else "with convenient hours"

    return {
        "title": f"{total} Laundromats in {city.name}, {city.state} | {settings.site_name}",
        "description": (
            f"Find the best laundry services in {city.name}. Compare {total} laundromats with "
            f"{average:.1f}★ average rating, {hours_phrase}. Easy access to {highlighted} and more."
        ),
        "h1": f"Laundromats in {city.name}, {city.state}",
        "stats": {
            "total_laundromats": total,
            "average_rating": round(average, 1),
            "popular_services": services,
            "has_24_hour": has_24_hour,
        },
        "sections": {
            "intro": (
                f"Looking for convenient laundry services in {city.name}? {settings.site_name} helps you "
                f"find the perfect laundromat with {total} locations throughout the city."
            ),
            "services": (
                f"Most laundromats in {city.name} offer essential services like {highlighted}."
            ),
            "rating": (
                f"The average rating for laundromats in {city.name} is {average:.1f} out of 5 stars."
            ),
            "hours": f"Find laundromats in {city.name} {hours_phrase}.",
        },
        "schema": listing_list_schema(laundromats),
        "breadcrumbs": breadcrumb_schema(
            [("Home", ""), (city.state, f"state/{city.state.lower()}"), (city.name, f"city/{city.slug}")]
        ),
    }


def state_page_content(state: State, cities: Sequence[City], laundromats: Sequence[Laundromat]) -> Dict[str, Any]:
    total = len(laundromats)
    average = _average_rating(laundromats)
    services = _popular_services(laundromats)
    city_counts = Counter(l.city for l in laundromats)
    top_cities = [name for name, _ in city_counts.most_common(5)]
    highlighted = ", ".join(services[:3]) or "self-service washers and dryers"
    cities_phrase = f"including {', '.join(top_cities)}" if top_cities else "throughout the state"

    return {
        "title": f"Laundromats in {state.name} | {total}+ Locations | {settings.site_name}",
        "description": (
            f"Find the best laundromats in {state.name}. {total}+ locations across {len(cities)} cities "
            f"with {average:.1f}★ average rating. Compare services, hours, and amenities."
        ),
        "h1": f"Laundromats in {state.name}",
        "stats": {
            "total_laundromats": total,
            "city_count": len(cities),
            "average_rating": round(average, 1),
            "popular_services": services,
            "top_cities": top_cities,
        },
        "sections": {
            "intro": (
                f"Looking for laundry services in {state.name}? {settings.site_name} features {total}+ "
                f"laundromats across {len(cities)} cities {cities_phrase}."
            ),
            "services": f"Most laundromats in {state.name} offer essential services like {highlighted}.",
            "rating": (
                f"The average rating for laundromats in {state.name} is {average:.1f} out of 5 stars."
            ),
        },
        "schema": breadcrumb_schema([("Home", ""), (state.name, f"state/{state.abbr.lower()}")]),
    }


# Sitemaps ----------------------------------------------------------------


def _format_date(value: Optional[datetime]) -> Optional[str]:
    return value.date().isoformat() if value else None


def sitemap_xml(urls: Iterable[Dict[str, Optional[str]]]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]
    for url in urls:
        lines.append("  <url>")
        lines.append(f"    <loc>{escape(url['loc'])}</loc>")
        if url.get("lastmod"):
            lines.append(f"    <lastmod>{url['lastmod']}</lastmod>")
        if url.get("priority"):
            lines.append(f"    <priority>{url['priority']}</priority>")
        lines.append("  </url>")
    lines.append("</urlset>")
    return "\n".join(lines)


def sitemap_index_xml(sitemap_urls: Iterable[str], today: Optional[str] = None) -> str:
    today = today or datetime.utcnow().date().isoformat()
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]
    for url in sitemap_urls:
        lines.append("  <sitemap>")
        lines.append(f"    <loc>{escape(url)}</loc>")
        lines.append(f"    <lastmod>{today}</lastmod>")
        lines.append("  </sitemap>")
    lines.append("</sitemapindex>")
    return "\n".join(lines)


def laundromat_sitemap_count(total_laundromats: int) -> int:
    return -(-total_laundromats // SITEMAP_MAX_URLS)


def sitemap_index_urls(total_laundromats: int) -> List[str]:
    base = _site_url()
    urls = [f"{base}/sitemap-main.xml"]
    for page in range(1, laundromat_sitemap_count(total_laundromats) + 1):
        urls.append(f"{base}/sitemap-laundromats-{page}.xml")
    return urls


def main_sitemap_urls(
    states: Iterable[State], cities: Iterable[City], tips: Iterable[LaundryTip]
) -> List[Dict[str, Optional[str]]]:
    base = _site_url()
    urls: List[Dict[str, Optional[str]]] = [
        {"loc": base, "priority": "1.0"},
        {"loc": f"{base}/tips", "priority": "0.8"},
        {"loc": f"{base}/states", "priority": "0.8"},
    ]
    urls.extend({"loc": f"{base}/state/{s.abbr.lower()}", "priority": "0.7"} for s in states)
    urls.extend({"loc": f"{base}/city/{c.slug}", "priority": "0.6"} for c in cities)
    urls.extend({"loc": f"{base}/tips/{t.slug}", "priority": "0.7"} for t in tips)
    return urls


def laundromat_sitemap_urls(laundromats: Iterable[Laundromat]) -> List[Dict[str, Optional[str]]]:
    return [
        {
            "loc": listing_url(l.slug),
            "lastmod": _format_date(l.created_at),
            "priority": "0.8" if l.listing_type in ("premium", "featured") else "0.5",
        }
        for l in laundromats
    ]
