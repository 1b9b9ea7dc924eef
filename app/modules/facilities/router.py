"""Facility catalog API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.modules.facilities.schemas import FacilityCreate, FacilityRead, FacilityUpdate, SlotOption
from app.modules.facilities.service import FacilityService, get_facility_service
from app.modules.identity.service import get_current_user, require_admin

router = APIRouter(prefix="/facilities", tags=["facilities"])


@router.get("", response_model=list[FacilityRead])
async def list_facilities(
    include_inactive: bool = False,
    service: FacilityService = Depends(get_facility_service),
    _current_user=Depends(get_current_user),
) -> list[FacilityRead]:
    """List bookable facilities."""
    return await service.list_facilities(include_inactive=include_inactive)


@router.post("", response_model=FacilityRead, status_code=status.HTTP_201_CREATED)
async def create_facility(
    payload: FacilityCreate,
    service: FacilityService = Depends(get_facility_service),
    admin=Depends(require_admin),
) -> FacilityRead:
    """Create a facility (admin)."""
    return await service.create_facility(payload, admin)


@router.get("/{facility_id}", response_model=FacilityRead)
async def get_facility(
    facility_id: UUID,
    service: FacilityService = Depends(get_facility_service),
    _current_user=Depends(get_current_user),
) -> FacilityRead:
    """Return one facility."""
    return await service.get_facility(facility_id)


@router.patch("/{facility_id}", response_model=FacilityRead)
async def update_facility(
    facility_id: UUID,
    payload: FacilityUpdate,
    service: FacilityService = Depends(get_facility_service),
    admin=Depends(require_admin),
) -> FacilityRead:
    """Update a facility; deactivate through status or is_active (admin)."""
    return await service.update_facility(facility_id, payload, admin)


@router.get("/{facility_id}/slots", response_model=list[SlotOption])
async def list_slots(
    facility_id: UUID,
    day: date = Query(alias="date"),
    editing_booking_id: UUID | None = None,
    service: FacilityService = Depends(get_facility_service),
    _current_user=Depends(get_current_user),
) -> list[SlotOption]:
    """List offerable windows for a date with their booked flag."""
    return await service.get_slots(facility_id, day, editing_booking_id)
