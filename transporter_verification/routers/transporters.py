"""
Transporter Review API Routes.
Maps reviewer actions (approve-dl, approve-insurance, approve-id, reject)
and bulk verification onto the verification engine.
"""

import logging
from fastapi import APIRouter, HTTPException

from ..errors import IllegalTransition, InvalidInput, NotFound, VerificationError
from ..models.enums import ApprovalStatus, DecisionOutcome, DecisionSource, DocumentKind, ReviewAction
from ..models.schemas import (
    ApprovalAggregate,
    BatchReport,
    BulkVerifyRequest,
    Decision,
    ReviewRequest,
    ReviewResponse,
    TransporterRecord,
)
from ..services.container import build_services
from ..services.decision_engine import DOCUMENT_LABELS
from ..utils.helpers import parse_document_date

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/transporters", tags=["Transporters"])

# Initialize services
services = build_services()

# Kinds whose approval must record an expiry date
EXPIRY_REQUIRED = (DocumentKind.DRIVER_LICENSE, DocumentKind.INSURANCE)

ERROR_STATUS_CODES = {
    InvalidInput: 400,
    NotFound: 404,
    IllegalTransition: 409,
}


def _http_error(error: VerificationError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(error), 400)
    return HTTPException(status_code=status_code, detail=str(error))


async def _notify(record: TransporterRecord, aggregate: ApprovalAggregate):
    await services.notifier.notify_status_change(record, aggregate)


@router.post("/{transporter_id}/review", response_model=ReviewResponse)
async def review_transporter(transporter_id: str, request: ReviewRequest):
    """
    Apply a reviewer action to a transporter.

    Approve actions first run automated verification (unless skipped);
    a confident verification failure auto-rejects the transporter instead
    of approving the document. When verification auto-approves, the expiry
    read from the document stands and a differing reviewer expiry_date is
    reported as not applied.
    """
    record = await services.store.get_entity(transporter_id)
    if not record:
        raise HTTPException(status_code=404, detail="Transporter not found")

    aggregate = await services.state_machine.get_aggregate(transporter_id)
    if aggregate and aggregate.status == ApprovalStatus.APPROVED and request.action != ReviewAction.REJECT:
        raise HTTPException(status_code=400, detail="Transporter already approved")
    if aggregate and aggregate.status == ApprovalStatus.REJECTED and request.action == ReviewAction.REJECT:
        raise HTTPException(status_code=400, detail="Transporter already rejected")

    try:
        # ── Reject ───────────────────────────────────────────────
        if request.action == ReviewAction.REJECT:
            applied = await services.state_machine.reject_entity(
                transporter_id, request.reason or "Unqualified"
            )
            if applied.should_notify:
                await _notify(record, applied.aggregate)
            return ReviewResponse(message="Transporter rejected", aggregate=applied.aggregate)

        kind = request.action.document_kind
        label = DOCUMENT_LABELS[kind]

        # ── Automated Verification ───────────────────────────────
        verification = None
        if not request.skip_auto_verification:
            document_ref = record.document_ref(kind)
            if not document_ref:
                raise HTTPException(status_code=400, detail=f"No {label.lower()} document submitted")

            verification = await services.orchestrator.verify(transporter_id, kind, document_ref)
            current = await services.state_machine.get_aggregate(transporter_id)
            if verification.should_notify:
                await _notify(record, current)

            if verification.decision.outcome == DecisionOutcome.AUTO_REJECT:
                return ReviewResponse(
                    message=f"{label} auto-rejected due to verification failure",
                    aggregate=current,
                    verification=verification,
                )

            # An auto-approved slot keeps the expiry read from the document
            if verification.decision.outcome == DecisionOutcome.AUTO_APPROVE:
                recorded = current.slots[kind].expires_on
                message = f"{label} auto-approved"
                if request.expiry_date is not None and request.expiry_date != recorded:
                    message += (
                        f"; expiry_date {request.expiry_date} not applied, "
                        f"recorded expiry is {recorded or 'unknown'}"
                    )
                    logger.warning(
                        f"Reviewer expiry for {transporter_id}/{kind.value} ignored after auto-approval"
                    )
                return ReviewResponse(message=message, aggregate=current, verification=verification)

        # ── Reviewer Approval ────────────────────────────────────
        expires_on = request.expiry_date
        if expires_on is None and verification is not None:
            expires_on = parse_document_date(verification.extraction.fields.get("expiry_date"))
        if kind in EXPIRY_REQUIRED and expires_on is None:
            raise HTTPException(status_code=400, detail="expiry_date is required")

        applied = await services.state_machine.apply_decision(
            transporter_id,
            kind,
            Decision.auto_approve("Approved by reviewer", source=DecisionSource.REVIEWER),
            score=verification.score if verification else None,
            expires_on=expires_on,
        )
        if applied.should_notify:
            await _notify(record, applied.aggregate)

        logger.info(
            f"Reviewer approved {kind.value} for {transporter_id} "
            f"| Status: {applied.aggregate.status.value}"
        )
        return ReviewResponse(
            message=f"{label} approved", aggregate=applied.aggregate, verification=verification
        )

    except VerificationError as e:
        logger.error(f"Review failed for {transporter_id}: {str(e)}")
        raise _http_error(e)


@router.post("/bulk-verify", response_model=BatchReport)
async def bulk_verify(request: BulkVerifyRequest):
    """Verify every submitted document for a list of transporters."""
    items = await services.coordinator.verify_entities(request.transporter_ids)
    for item in items:
        if item.outcome and item.outcome.should_notify:
            record = await services.store.get_entity(item.outcome.entity_id)
            aggregate = await services.state_machine.get_aggregate(item.outcome.entity_id)
            await _notify(record, aggregate)
    return BatchReport.from_items(items)


@router.get("/{transporter_id}/approval", response_model=ApprovalAggregate)
async def get_approval(transporter_id: str):
    """Retrieve the approval state of a transporter."""
    aggregate = await services.state_machine.get_aggregate(transporter_id)
    if not aggregate:
        raise HTTPException(status_code=404, detail="No approval record for transporter")
    return aggregate


@router.post("/{transporter_id}/reopen", response_model=ApprovalAggregate)
async def reopen_transporter(transporter_id: str):
    """Return a rejected transporter to review so documents can be re-submitted."""
    try:
        applied = await services.state_machine.reopen(transporter_id)
    except VerificationError as e:
        raise _http_error(e)
    return applied.aggregate
