"""
State and City API Routes
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from laundrylocator.database import get_db
from laundrylocator.models import City
from laundrylocator.services import directory

router = APIRouter()


@router.get("/states")
async def list_states(db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return [directory.serialize_state(s) for s in directory.list_states(db)]


@router.get("/states/{state_slug}")
async def get_state(state_slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    State by slug, abbreviation or name, with its cities
    """
    state = directory.resolve_state(db, state_slug)
    if state is None:
        raise HTTPException(status_code=404, detail="State not found")
    data = directory.serialize_state(state)
    data["cities"] = [directory.serialize_city(c) for c in directory.cities_for_state(db, state.abbr)]
    return data


@router.get("/states/{abbr}/cities")
async def state_cities(abbr: str, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    state = directory.resolve_state(db, abbr)
    if state is None:
        raise HTTPException(status_code=404, detail="State not found")
    return [directory.serialize_city(c) for c in directory.cities_for_state(db, state.abbr)]


@router.get("/cities/popular")
async def popular_cities(
    limit: int = Query(default=5, ge=1, le=50), db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    return [directory.serialize_city(c) for c in directory.popular_cities(db, limit=limit)]


@router.get("/cities/{city_id:int}/laundromats")
async def city_laundromats(city_id: int, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    city = db.query(City).filter(City.id == city_id).first()
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return [directory.serialize_laundromat(row) for row in directory.laundromats_in_city(db, city)]


@router.get("/cities/{city_slug}")
async def get_city(city_slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    City by slug or city-name-st pattern, with its listings
    """
    city = directory.resolve_city(db, city_slug)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    data = directory.serialize_city(city)
    data["state_name"] = directory.state_name(city.state)
    data["laundromats"] = [
        directory.serialize_laundromat(row) for row in directory.laundromats_in_city(db, city)
    ]
    return data
