"""Facility catalog business logic layer."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import Depends
from pydantic import ValidationError

from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.modules.audit.repository import AuditRepository
from app.modules.booking.repository import BookingRepository
from app.modules.facilities.repository import FacilityRepository
from app.modules.facilities.schemas import FacilityCreate, FacilityRead, FacilityUpdate, SlotOption
from app.modules.facilities.slots import generate_slots
from app.modules.identity.schemas import UserRecord
from app.shared.exceptions import BadRequestException, NotFoundException


class FacilityService:
    """Facility catalog service."""

    def __init__(
        self,
        repository: FacilityRepository,
        booking_repository: BookingRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.repository = repository
        self.booking_repository = booking_repository
        self.audit_repository = audit_repository

    async def list_facilities(self, include_inactive: bool = False) -> list[FacilityRead]:
        """List facilities, active ones only unless asked otherwise."""
        return await self.repository.list_facilities(include_inactive=include_inactive)

    async def get_facility(self, facility_id: UUID) -> FacilityRead:
        """Return one facility."""
        facility = await self.repository.get_facility(facility_id)
        if facility is None:
            raise NotFoundException("Facility not found")
        return facility

    async def create_facility(self, payload: FacilityCreate, actor: UserRecord) -> FacilityRead:
        """Add a facility to the catalog."""
        facility = await self.repository.create_facility(payload)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="facility.create",
            entity_type="facility",
            entity_id=str(facility.id),
            payload={"name": facility.name, "pricing_type": str(facility.pricing_type)},
        )
        return facility

    async def update_facility(self, facility_id: UUID, payload: FacilityUpdate, actor: UserRecord) -> FacilityRead:
        """Apply a partial update, validating the merged definition."""
        current = await self.get_facility(facility_id)
        changes = payload.model_dump(exclude_unset=True)
        try:
            merged = FacilityCreate.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise BadRequestException(f"Invalid facility definition: {exc.errors()[0]['msg']}") from exc

        facility = await self.repository.replace_facility(facility_id, merged)
        if facility is None:
            raise NotFoundException("Facility not found")
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="facility.update",
            entity_type="facility",
            entity_id=str(facility.id),
            payload={"fields": sorted(changes)},
        )
        return facility

    async def get_slots(
        self,
        facility_id: UUID,
        day: date,
        editing_booking_id: UUID | None = None,
    ) -> list[SlotOption]:
        """List offerable windows on a date, flagging those already taken."""
        facility = await self.get_facility(facility_id)
        bookings = await self.booking_repository.list_for_facility_day(facility.id, day)
        return generate_slots(facility, day, bookings, editing_booking_id)


async def get_facility_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> FacilityService:
    """Dependency provider for facility service."""
    return FacilityService(
        repository=FacilityRepository(backend),
        booking_repository=BookingRepository(backend),
        audit_repository=AuditRepository(backend),
    )
