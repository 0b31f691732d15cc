from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.household import normalize_household_code, require_household
from app.schemas.trip import (
    TripDeleteRequest,
    TripDeleteResponse,
    TripEndRequest,
    TripEndResponse,
    TripResponse,
    TripStartRequest,
    TripStartResponse,
    TripSummaryResponse,
)
from app.services.trip_service import delete_trip, end_trip, list_trips, start_trip

router = APIRouter(prefix="/api/trips", tags=["Trips"])


def _household(code: str) -> str:
    household_code = normalize_household_code(code)
    if not household_code:
        raise HTTPException(status_code=400, detail="Missing required fields")
    return household_code


@router.get("", response_model=List[TripSummaryResponse])
def list_trips_route(
    household_code: str = Depends(require_household),
    db: Session = Depends(get_db),
):
    return list_trips(db, household_code)


@router.post("/start", response_model=TripStartResponse)
def start_trip_route(body: TripStartRequest, db: Session = Depends(get_db)):
    trip = start_trip(db, store_id=body.store_id, household_code=_household(body.household_code))
    return TripStartResponse(trip=TripResponse.model_validate(trip))


@router.post("/end", response_model=TripEndResponse)
def end_trip_route(body: TripEndRequest, db: Session = Depends(get_db)):
    removed = end_trip(
        db,
        trip_id=body.trip_id,
        store_id=body.store_id,
        household_code=_household(body.household_code),
    )
    return TripEndResponse(items_removed=removed)


@router.post("/delete", response_model=TripDeleteResponse)
def delete_trip_route(body: TripDeleteRequest, db: Session = Depends(get_db)):
    delete_trip(db, body.trip_id)
    return TripDeleteResponse()
