"""Facility catalog repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from app.core.persistence import PersistenceBackend
from app.modules.facilities.schemas import FacilityBase, FacilityRead

FACILITIES = "facilities"


def _to_row(payload: FacilityBase) -> dict[str, Any]:
    row = payload.model_dump(include=set(FacilityBase.model_fields), exclude={"slots", "booking_rules"})
    row["slots"] = [slot.model_dump(mode="json") for slot in payload.slots]
    row["booking_rules"] = payload.booking_rules.model_dump(mode="json") if payload.booking_rules else None
    return row


class FacilityRepository:
    """Storage operations for the facility catalog."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self.backend = backend

    async def create_facility(self, payload: FacilityBase) -> FacilityRead:
        [row] = await self.backend.insert(FACILITIES, [_to_row(payload)])
        return FacilityRead.model_validate(row)

    async def replace_facility(self, facility_id: UUID, payload: FacilityBase) -> FacilityRead | None:
        rows = await self.backend.update(FACILITIES, _to_row(payload), {"id": facility_id})
        return FacilityRead.model_validate(rows[0]) if rows else None

    async def get_facility(self, facility_id: UUID) -> FacilityRead | None:
        rows = await self.backend.list(FACILITIES, {"id": facility_id}, limit=1)
        return FacilityRead.model_validate(rows[0]) if rows else None

    async def get_facilities_by_ids(self, facility_ids: Iterable[UUID]) -> dict[UUID, FacilityRead]:
        ids = list(set(facility_ids))
        if not ids:
            return {}
        rows = await self.backend.list(FACILITIES, {"id": ids})
        facilities = [FacilityRead.model_validate(row) for row in rows]
        return {facility.id: facility for facility in facilities}

    async def list_facilities(self, include_inactive: bool = False) -> list[FacilityRead]:
        filters = {} if include_inactive else {"is_active": True}
        rows = await self.backend.list(FACILITIES, filters, order_by="name")
        return [FacilityRead.model_validate(row) for row in rows]
