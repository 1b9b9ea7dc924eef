"""Booking repository layer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any
from uuid import UUID

from app.core.enums import BookingStatusEnum, RequestStatusEnum
from app.core.persistence import PersistenceBackend, Row
from app.modules.booking.schemas import (
    BookingCancellationDraft,
    BookingCancellationRead,
    BookingDraft,
    BookingModificationDraft,
    BookingModificationRead,
    BookingRead,
    BookingUser,
)
from app.modules.facilities.repository import FacilityRepository
from app.modules.identity.repository import IdentityRepository

BOOKINGS = "bookings"
CANCELLATIONS = "booking_cancellations"
MODIFICATIONS = "booking_modifications"


class BookingRepository:
    """Storage operations for bookings and their change requests."""

    def __init__(self, backend: PersistenceBackend) -> None:
        self.backend = backend
        self.facilities = FacilityRepository(backend)
        self.identity = IdentityRepository(backend)

    async def _with_relations(self, rows: Sequence[Row]) -> list[BookingRead]:
        if not rows:
            return []
        facilities = await self.facilities.get_facilities_by_ids(row["facility_id"] for row in rows)
        users = await self.identity.get_users_by_ids(row["user_id"] for row in rows)
        units = await self.identity.get_units_by_ids(user.unit_id for user in users.values() if user.unit_id)

        bookings = []
        for row in rows:
            booking = BookingRead.model_validate(row)
            user = users.get(booking.user_id)
            owner = None
            if user is not None:
                unit = units.get(user.unit_id) if user.unit_id else None
                owner = BookingUser(
                    id=user.id,
                    full_name=user.full_name,
                    unit_id=user.unit_id,
                    unit_number=unit.unit_number if unit else None,
                )
            bookings.append(
                booking.model_copy(update={"facility": facilities.get(booking.facility_id), "user": owner}),
            )
        return bookings

    async def create_bookings(self, drafts: Sequence[BookingDraft]) -> list[BookingRead]:
        rows = await self.backend.insert(BOOKINGS, [draft.model_dump() for draft in drafts])
        return await self._with_relations(rows)

    async def get_booking(self, booking_id: UUID) -> BookingRead | None:
        rows = await self.backend.list(BOOKINGS, {"id": booking_id}, limit=1)
        bookings = await self._with_relations(rows)
        return bookings[0] if bookings else None

    async def list_bookings(
        self,
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[BookingRead], int]:
        total = await self.backend.count(BOOKINGS, filters)
        rows = await self.backend.list(
            BOOKINGS,
            filters,
            order_by="date",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return await self._with_relations(rows), total

    async def list_group(self, group_id: UUID, status: BookingStatusEnum | None = None) -> list[BookingRead]:
        filters: dict[str, Any] = {"group_id": group_id}
        if status is not None:
            filters["status"] = status
        rows = await self.backend.list(BOOKINGS, filters, order_by="date")
        return await self._with_relations(rows)

    async def list_for_facility_day(self, facility_id: UUID, day: date) -> list[BookingRead]:
        rows = await self.backend.list(BOOKINGS, {"facility_id": facility_id, "date": day})
        return [BookingRead.model_validate(row) for row in rows]

    async def update_bookings(
        self,
        booking_ids: Iterable[UUID],
        patch: Mapping[str, Any],
        only_status: BookingStatusEnum | None = None,
    ) -> list[BookingRead]:
        filters: dict[str, Any] = {"id": list(booking_ids)}
        if not filters["id"]:
            return []
        if only_status is not None:
            filters["status"] = only_status
        rows = await self.backend.update(BOOKINGS, patch, filters)
        return await self._with_relations(rows)

    async def create_cancellations(
        self,
        drafts: Sequence[BookingCancellationDraft],
    ) -> list[BookingCancellationRead]:
        rows = await self.backend.insert(CANCELLATIONS, [draft.model_dump() for draft in drafts])
        return [BookingCancellationRead.model_validate(row) for row in rows]

    async def get_cancellation(self, cancellation_id: UUID) -> BookingCancellationRead | None:
        rows = await self.backend.list(CANCELLATIONS, {"id": cancellation_id}, limit=1)
        requests = await self._cancellations_with_bookings(rows)
        return requests[0] if requests else None

    async def list_cancellations(
        self,
        filters: Mapping[str, Any],
    ) -> list[BookingCancellationRead]:
        rows = await self.backend.list(CANCELLATIONS, filters, order_by="created_at", descending=True)
        return await self._cancellations_with_bookings(rows)

    async def update_cancellations(
        self,
        cancellation_ids: Iterable[UUID],
        patch: Mapping[str, Any],
    ) -> list[BookingCancellationRead]:
        ids = list(cancellation_ids)
        if not ids:
            return []
        rows = await self.backend.update(CANCELLATIONS, patch, {"id": ids})
        return [BookingCancellationRead.model_validate(row) for row in rows]

    async def _cancellations_with_bookings(self, rows: Sequence[Row]) -> list[BookingCancellationRead]:
        bookings = await self._bookings_by_id(row["booking_id"] for row in rows)
        return [
            BookingCancellationRead.model_validate({**row, "booking": bookings.get(UUID(str(row["booking_id"])))})
            for row in rows
        ]

    async def create_modification(self, draft: BookingModificationDraft) -> BookingModificationRead:
        [row] = await self.backend.insert(MODIFICATIONS, [draft.model_dump()])
        return BookingModificationRead.model_validate(row)

    async def get_modification(self, modification_id: UUID) -> BookingModificationRead | None:
        rows = await self.backend.list(MODIFICATIONS, {"id": modification_id}, limit=1)
        requests = await self._modifications_with_bookings(rows)
        return requests[0] if requests else None

    async def list_pending_modifications(self) -> list[BookingModificationRead]:
        rows = await self.backend.list(
            MODIFICATIONS,
            {"status": RequestStatusEnum.PENDING},
            order_by="created_at",
            descending=True,
        )
        return await self._modifications_with_bookings(rows)

    async def update_modification(
        self,
        modification_id: UUID,
        patch: Mapping[str, Any],
    ) -> BookingModificationRead | None:
        rows = await self.backend.update(MODIFICATIONS, patch, {"id": modification_id})
        return BookingModificationRead.model_validate(rows[0]) if rows else None

    async def _modifications_with_bookings(self, rows: Sequence[Row]) -> list[BookingModificationRead]:
        bookings = await self._bookings_by_id(row["booking_id"] for row in rows)
        return [
            BookingModificationRead.model_validate({**row, "booking": bookings.get(UUID(str(row["booking_id"])))})
            for row in rows
        ]

    async def _bookings_by_id(self, booking_ids: Iterable[Any]) -> dict[UUID, BookingRead]:
        ids = list({UUID(str(booking_id)) for booking_id in booking_ids})
        if not ids:
            return {}
        rows = await self.backend.list(BOOKINGS, {"id": ids})
        return {booking.id: booking for booking in await self._with_relations(rows)}
