from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from laundrylocator.models import LaundryTip, State

US_STATES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}

STATE_ABBR_BY_NAME: dict[str, str] = {name.lower(): abbr for abbr, name in US_STATES.items()}

TIP_SEED_DATA: list[dict[str, Any]] = [
    {
        "title": "How to Remove Red Wine Stains",
        "slug": "remove-red-wine-stains",
        "description": "Learn the best techniques for removing red wine stains from different fabrics",
        "content": (
            "Blot the stain with a clean cloth to absorb as much wine as possible. Avoid rubbing, "
            "as this can spread the stain. Apply a mixture of dish soap and hydrogen peroxide, let it "
            "sit for 5-10 minutes, then wash as usual. For delicate fabrics, try club soda or salt "
            "to absorb the wine before washing."
        ),
        "category": "Stain Removal",
        "tags": ["stains", "wine", "cleaning"],
    },
    {
        "title": "Best Settings for Washing Different Fabrics",
        "slug": "fabric-washing-settings",
        "description": "A guide to selecting the right washing settings for various fabric types",
        "content": (
            "For cottons, use warm water and a regular cycle. For synthetics, use cool water and a "
            "permanent press cycle. Delicates should be washed in cold water on a gentle cycle. Wool "
            "and cashmere should be hand-washed or use a wool cycle. Always check clothing labels."
        ),
        "category": "Washing Techniques",
        "tags": ["fabrics", "washing", "settings"],
    },
    {
        "title": "Energy-Saving Laundry Tips",
        "slug": "energy-saving",
        "description": "Reduce your energy consumption with these eco-friendly laundry practices",
        "content": (
            "Wash clothes in cold water whenever possible, as heating water accounts for most of the "
            "energy used in washing. Wash full loads, use dryer balls to reduce drying time and "
            "air-dry clothes when the weather permits."
        ),
        "category": "Eco-Friendly Laundry",
        "tags": ["eco-friendly", "energy saving", "sustainability"],
    },
    {
        "title": "How to Care for Delicate Fabrics",
        "slug": "delicate-fabric-care",
        "description": "Tips for washing and maintaining silk, lace and cashmere",
        "content": (
            "Hand wash silk in cold water with a mild detergent and never wring it. Lay cashmere and "
            "wool flat to dry to prevent stretching. Put lace in a mesh bag on a gentle cycle. "
            "Avoid bleach on delicate fabrics."
        ),
        "category": "Fabric Care",
        "tags": ["delicates", "silk", "cashmere", "lace"],
    },
]


def seed_states(db: Session) -> int:
    existing = {row.abbr for row in db.query(State.abbr).all()}
    inserted = 0
    for abbr, name in US_STATES.items():
        if abbr in existing:
            continue
        db.add(State(name=name, abbr=abbr, slug=name.lower().replace(" ", "-"), laundry_count=0))
        inserted += 1
    if inserted:
        db.commit()
    return inserted


def seed_tips(db: Session) -> int:
    existing = {row.slug for row in db.query(LaundryTip.slug).all()}
    inserted = 0
    for item in TIP_SEED_DATA:
        if item["slug"] in existing:
            continue
        db.add(LaundryTip(**item))
        inserted += 1
    if inserted:
        db.commit()
    return inserted


def seed_reference_data(db: Session) -> dict[str, int]:
    return {"states": seed_states(db), "tips": seed_tips(db)}
