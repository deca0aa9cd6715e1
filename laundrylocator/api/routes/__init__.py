"""
API Routes Package
"""
from . import (
    health,
    auth,
    laundromats,
    locations,
    reviews,
    subscriptions,
    csv_import,
    enrichment,
    seo,
    maps,
    business,
    tips,
)
