"""Booking API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.enums import BookingStatusEnum
from app.modules.booking.approvals import ApprovalService, get_approval_service
from app.modules.booking.schemas import (
    BookingCancellationRead,
    BookingCreate,
    BookingCreateResult,
    BookingEditRequest,
    BookingModificationRead,
    BookingRead,
    CancellationRequestCreate,
    CancellationRequestResult,
    CancellationReview,
    CancellationReviewResult,
    ModificationRequestResult,
    ModificationReview,
    ModificationReviewResult,
)
from app.modules.booking.service import BookingService, get_booking_service
from app.modules.identity.service import get_current_user, require_admin
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("", response_model=BookingCreateResult, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingCreateResult:
    """Book a facility; one booking per day of the requested range."""
    return await service.create_booking(payload, current_user)


@router.get("/my", response_model=Page[BookingRead])
async def list_my_bookings(
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """List current user's bookings."""
    items, total = await service.list_my_bookings(current_user, pagination.limit, pagination.offset)
    return build_page(items, total, pagination)


@router.get("", response_model=Page[BookingRead])
async def list_bookings(
    facility_id: UUID | None = None,
    booking_status: BookingStatusEnum | None = Query(default=None, alias="status"),
    day: date | None = Query(default=None, alias="date"),
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    _admin=Depends(require_admin),
) -> Page[BookingRead]:
    """List bookings of all residents (admin)."""
    items, total = await service.list_bookings(
        pagination.limit,
        pagination.offset,
        facility_id=facility_id,
        status=booking_status,
        day=day,
    )
    return build_page(items, total, pagination)


@router.get("/cancellations/pending", response_model=list[BookingCancellationRead])
async def list_pending_cancellations(
    service: ApprovalService = Depends(get_approval_service),
    _admin=Depends(require_admin),
) -> list[BookingCancellationRead]:
    """List cancellation requests awaiting review (admin)."""
    return await service.list_pending_cancellations()


@router.post("/cancellations/{cancellation_id}/review", response_model=CancellationReviewResult)
async def review_cancellation(
    cancellation_id: UUID,
    payload: CancellationReview,
    service: ApprovalService = Depends(get_approval_service),
    admin=Depends(require_admin),
) -> CancellationReviewResult:
    """Approve or reject a cancellation request for its whole group (admin)."""
    return await service.review_cancellation(cancellation_id, payload, admin)


@router.get("/modifications/pending", response_model=list[BookingModificationRead])
async def list_pending_modifications(
    service: ApprovalService = Depends(get_approval_service),
    _admin=Depends(require_admin),
) -> list[BookingModificationRead]:
    """List modification requests awaiting review (admin)."""
    return await service.list_pending_modifications()


@router.post("/modifications/{modification_id}/review", response_model=ModificationReviewResult)
async def review_modification(
    modification_id: UUID,
    payload: ModificationReview,
    service: ApprovalService = Depends(get_approval_service),
    admin=Depends(require_admin),
) -> ModificationReviewResult:
    """Approve or reject a modification request (admin)."""
    return await service.review_modification(modification_id, payload, admin)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Return one booking owned by the caller (or any booking for admins)."""
    return await service.get_booking(booking_id, current_user)


@router.post("/{booking_id}/modify", response_model=ModificationRequestResult)
async def request_modification(
    booking_id: UUID,
    payload: BookingEditRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> ModificationRequestResult:
    """Propose a new date and window for a confirmed booking."""
    return await service.edit_booking(booking_id, payload, current_user)


@router.post("/{booking_id}/cancel-request", response_model=CancellationRequestResult)
async def request_cancellation(
    booking_id: UUID,
    payload: CancellationRequestCreate,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> CancellationRequestResult:
    """Ask for cancellation of a booking and its confirmed siblings."""
    return await service.request_cancellation(booking_id, payload, current_user)
