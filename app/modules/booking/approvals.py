"""Administrator review of cancellation and modification requests."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from fastapi import Depends

from app.core.enums import BookingStatusEnum, RequestStatusEnum, ReviewDecisionEnum
from app.core.persistence import PersistenceBackend, get_persistence_backend
from app.modules.audit.repository import AuditRepository
from app.modules.billing.repository import InvoiceRepository
from app.modules.billing.service import InvoiceService
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import (
    BookingCancellationRead,
    BookingModificationRead,
    CancellationReview,
    CancellationReviewResult,
    ModificationReview,
    ModificationReviewResult,
)
from app.modules.booking.service import publish_status_change, workflow_steps
from app.modules.facilities.repository import FacilityRepository
from app.modules.identity.schemas import UserRecord
from app.shared.exceptions import ConflictException, NotFoundException
from app.shared.workflow import WorkflowLog

logger = logging.getLogger(__name__)


class ApprovalService:
    """Resolve resident change requests on behalf of administrators."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        facility_repository: FacilityRepository,
        invoice_service: InvoiceService,
        audit_repository: AuditRepository,
    ) -> None:
        self.booking_repository = booking_repository
        self.facility_repository = facility_repository
        self.invoice_service = invoice_service
        self.audit_repository = audit_repository

    async def _group_requests(self, selected: BookingCancellationRead) -> list[BookingCancellationRead]:
        booking = selected.booking
        if booking is None or booking.group_id is None:
            return [selected]
        group = await self.booking_repository.list_group(booking.group_id)
        requests = await self.booking_repository.list_cancellations(
            {"booking_id": [member.id for member in group], "status": RequestStatusEnum.PENDING},
        )
        if all(request.id != selected.id for request in requests):
            requests.append(selected)
        return requests

    async def review_cancellation(
        self,
        cancellation_id: UUID,
        payload: CancellationReview,
        actor: UserRecord,
    ) -> CancellationReviewResult:
        """Approve or reject a cancellation request for its whole booking group."""
        selected = await self.booking_repository.get_cancellation(cancellation_id)
        if selected is None:
            raise NotFoundException("Cancellation request not found")
        if selected.status != RequestStatusEnum.PENDING:
            raise ConflictException(f"Cancellation request is already {selected.status}")
        if selected.booking is None:
            raise NotFoundException("Booking not found")

        requests = await self._group_requests(selected)
        request_ids = [request.id for request in requests]
        booking_ids = [request.booking_id for request in requests]

        if payload.decision == ReviewDecisionEnum.REJECT:
            return await self._reject_cancellation(selected, request_ids, booking_ids, payload, actor)

        workflow = WorkflowLog("booking.cancellation.approve", self.booking_repository.backend)
        review_patch = {
            "status": RequestStatusEnum.APPROVED,
            "reviewed_by": actor.id,
            "admin_response": payload.admin_response,
        }
        sibling_ids = [request_id for request_id in request_ids if request_id != selected.id]

        async def _approve_requests() -> list[BookingCancellationRead]:
            charged = await self.booking_repository.update_cancellations(
                [selected.id],
                {**review_patch, "cancellation_charges": payload.penalty_amount},
            )
            others = await self.booking_repository.update_cancellations(
                sibling_ids,
                {**review_patch, "cancellation_charges": Decimal("0")},
            )
            return charged + others

        cancellations = await workflow.run("approve_requests", _approve_requests)
        bookings = await workflow.run(
            "cancel_bookings",
            lambda: self.booking_repository.update_bookings(
                booking_ids,
                {"status": BookingStatusEnum.CANCELLED},
                only_status=BookingStatusEnum.CANCELLATION_REQUESTED,
            ),
        )

        group_bookings = [request.booking for request in requests if request.booking is not None]
        facility = selected.booking.facility or await self.facility_repository.get_facility(
            selected.booking.facility_id,
        )
        owner = selected.booking.user
        unit_id = owner.unit_id if owner is not None else None

        cancelled_invoices = []
        if not payload.cancel_original_invoice:
            workflow.skip("cancel_original_invoice", "not requested by reviewer")
        elif facility is None:
            workflow.skip("cancel_original_invoice", "facility not found", notice="Original invoice was not cancelled.")
        else:
            matched = await workflow.attempt(
                "cancel_original_invoice",
                lambda: self.invoice_service.cancel_booking_invoice(facility, group_bookings, unit_id),
                failure_notice="Bookings cancelled, but the original invoice could not be cancelled.",
            )
            if matched:
                cancelled_invoices = matched
            elif matched is not None:
                workflow.warn("No matching invoice was found to cancel; review billing manually.")

        penalty_invoice = None
        if payload.penalty_amount > 0:
            if unit_id is None or facility is None:
                workflow.skip(
                    "raise_penalty_invoice",
                    "resident has no unit",
                    notice="Could not generate the penalty invoice because the resident has no unit assigned.",
                )
            else:
                penalty_invoice = await workflow.attempt(
                    "raise_penalty_invoice",
                    lambda: self.invoice_service.raise_cancellation_invoice(
                        unit_id,
                        facility,
                        payload.penalty_amount,
                        payload.apply_gst,
                        len(requests),
                    ),
                    failure_notice="Bookings cancelled, but the penalty invoice could not be generated.",
                )

        await publish_status_change(self.audit_repository, bookings, BookingStatusEnum.CANCELLED)
        await self.audit_repository.record_workflow(
            workflow,
            actor.id,
            "booking_group",
            str(selected.booking.group_id or selected.booking.id),
        )
        return CancellationReviewResult(
            decision=payload.decision,
            cancellations=cancellations,
            bookings=bookings,
            cancelled_invoices=cancelled_invoices,
            penalty_invoice=penalty_invoice,
            warnings=workflow.warnings,
            steps=workflow_steps(workflow),
        )

    async def _reject_cancellation(
        self,
        selected: BookingCancellationRead,
        request_ids: list[UUID],
        booking_ids: list[UUID],
        payload: CancellationReview,
        actor: UserRecord,
    ) -> CancellationReviewResult:
        cancellations = await self.booking_repository.update_cancellations(
            request_ids,
            {
                "status": RequestStatusEnum.REJECTED,
                "reviewed_by": actor.id,
                "admin_response": payload.admin_response,
            },
        )
        bookings = await self.booking_repository.update_bookings(
            booking_ids,
            {"status": BookingStatusEnum.CONFIRMED},
            only_status=BookingStatusEnum.CANCELLATION_REQUESTED,
        )
        await publish_status_change(self.audit_repository, bookings, BookingStatusEnum.CONFIRMED)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="booking.cancellation.reject",
            entity_type="booking_group",
            entity_id=str(selected.booking.group_id or selected.booking.id),
            payload={"request_ids": [str(request_id) for request_id in request_ids]},
        )
        return CancellationReviewResult(decision=payload.decision, cancellations=cancellations, bookings=bookings)

    async def review_modification(
        self,
        modification_id: UUID,
        payload: ModificationReview,
        actor: UserRecord,
    ) -> ModificationReviewResult:
        """Apply or discard a proposed booking change."""
        modification = await self.booking_repository.get_modification(modification_id)
        if modification is None:
            raise NotFoundException("Modification request not found")
        if modification.status != RequestStatusEnum.PENDING:
            raise ConflictException(f"Modification request is already {modification.status}")

        approved = payload.decision == ReviewDecisionEnum.APPROVE
        updated = await self.booking_repository.update_modification(
            modification.id,
            {
                "status": RequestStatusEnum.APPROVED if approved else RequestStatusEnum.REJECTED,
                "reviewed_by": actor.id,
                "admin_response": payload.admin_response,
            },
        )

        booking_patch: dict = {"status": BookingStatusEnum.CONFIRMED}
        if approved:
            booking_patch.update(
                date=modification.new_date,
                start_time=modification.new_start_time,
                end_time=modification.new_end_time,
            )
        bookings = await self.booking_repository.update_bookings(
            [modification.booking_id],
            booking_patch,
            only_status=BookingStatusEnum.MODIFICATION_REQUESTED,
        )
        if not bookings:
            logger.warning("Booking %s was not awaiting modification", modification.booking_id)

        await publish_status_change(self.audit_repository, bookings, BookingStatusEnum.CONFIRMED)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action=f"booking.modification.{'approve' if approved else 'reject'}",
            entity_type="booking",
            entity_id=str(modification.booking_id),
            payload={"modification_id": str(modification.id)},
        )
        return ModificationReviewResult(
            decision=payload.decision,
            modification=updated or modification,
            booking=bookings[0] if bookings else modification.booking,
        )

    async def list_pending_cancellations(self) -> list[BookingCancellationRead]:
        """List cancellation requests awaiting review, with their bookings."""
        return await self.booking_repository.list_cancellations({"status": RequestStatusEnum.PENDING})

    async def list_pending_modifications(self) -> list[BookingModificationRead]:
        """List modification requests awaiting review, with their bookings."""
        return await self.booking_repository.list_pending_modifications()


async def get_approval_service(
    backend: PersistenceBackend = Depends(get_persistence_backend),
) -> ApprovalService:
    """Dependency provider for approval service."""
    return ApprovalService(
        booking_repository=BookingRepository(backend),
        facility_repository=FacilityRepository(backend),
        invoice_service=InvoiceService(InvoiceRepository(backend)),
        audit_repository=AuditRepository(backend),
    )

