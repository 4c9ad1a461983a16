"""
Pydantic models for the document verification engine.
Defines extraction/verification results, decisions, approval state
and batch reporting models.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Any, Optional
from .enums import (
    ApprovalStatus,
    DecisionOutcome,
    DecisionSource,
    DocumentKind,
    ReviewAction,
    SlotStatus,
)


# ─── Transporter Record ─────────────────────────────────────────────

class TransporterRecord(BaseModel):
    """Identifying fields and document references supplied by the entity store."""
    entity_id: str = Field(..., description="Transporter ID")
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    driver_license_number: Optional[str] = None
    id_number: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    insurance_provider: Optional[str] = None
    driver_license_url: Optional[str] = None
    insurance_url: Optional[str] = None
    id_url: Optional[str] = None

    def identifying_fields(self, kind: DocumentKind) -> dict[str, Optional[str]]:
        """Fields sent to the identity verifier for a document kind."""
        if kind == DocumentKind.DRIVER_LICENSE:
            return {"license_number": self.driver_license_number, "id_number": self.id_number}
        if kind == DocumentKind.INSURANCE:
            return {
                "policy_number": self.insurance_policy_number,
                "provider": self.insurance_provider,
            }
        return {"id_number": self.id_number}

    def document_ref(self, kind: DocumentKind) -> Optional[str]:
        return {
            DocumentKind.DRIVER_LICENSE: self.driver_license_url,
            DocumentKind.INSURANCE: self.insurance_url,
            DocumentKind.NATIONAL_ID: self.id_url,
        }[kind]


# ─── Upstream Results ───────────────────────────────────────────────

class ExtractionResult(BaseModel):
    """Structured fields extracted from a document image by OCR."""
    kind: DocumentKind
    fields: dict[str, Optional[str]] = Field(
        default_factory=dict, description="Extracted fields — any may be missing"
    )
    raw_text: str = Field(default="", description="Raw OCR text")
    success: bool = Field(default=True)
    error: Optional[str] = None

    @classmethod
    def failed(cls, kind: DocumentKind, error: str) -> "ExtractionResult":
        return cls(kind=kind, success=False, error=error)


class VerifierVerdict(BaseModel):
    """
    Identity verification verdict.

    ``success`` reports whether the check could be carried out at all;
    ``is_valid`` is only meaningful when it could.
    """
    kind: DocumentKind
    is_valid: bool = False
    success: bool = True
    provider: str = ""
    payload: dict[str, Any] = Field(default_factory=dict, description="Provider response")
    error: Optional[str] = None

    @classmethod
    def failed(cls, kind: DocumentKind, error: str, provider: str = "") -> "VerifierVerdict":
        return cls(kind=kind, success=False, is_valid=False, provider=provider, error=error)


# ─── Decisions ──────────────────────────────────────────────────────

class Decision(BaseModel):
    """Outcome of the decision policy for one document."""
    outcome: DecisionOutcome
    reason: Optional[str] = None
    source: DecisionSource = DecisionSource.ENGINE

    @classmethod
    def auto_approve(cls, reason: Optional[str] = None, source=DecisionSource.ENGINE) -> "Decision":
        return cls(outcome=DecisionOutcome.AUTO_APPROVE, reason=reason, source=source)

    @classmethod
    def auto_reject(cls, reason: str, source=DecisionSource.ENGINE) -> "Decision":
        return cls(outcome=DecisionOutcome.AUTO_REJECT, reason=reason, source=source)

    @classmethod
    def manual_review(cls, reason: Optional[str] = None) -> "Decision":
        return cls(outcome=DecisionOutcome.MANUAL_REVIEW, reason=reason)


# ─── Approval State ─────────────────────────────────────────────────

class DocumentSlot(BaseModel):
    """Approval state of one document kind for one transporter."""
    kind: DocumentKind
    status: SlotStatus = SlotStatus.UNSUBMITTED
    last_decision: Optional[Decision] = None
    last_score: Optional[int] = Field(None, ge=0, le=100)
    expires_on: Optional[date] = None
    rejection_reason: Optional[str] = None
    updated_at: Optional[datetime] = None


def _empty_slots() -> dict[DocumentKind, DocumentSlot]:
    return {kind: DocumentSlot(kind=kind) for kind in DocumentKind}


class ApprovalAggregate(BaseModel):
    """Per-transporter approval state: one slot per document kind plus overall status."""
    entity_id: str
    status: ApprovalStatus = ApprovalStatus.IN_REVIEW
    slots: dict[DocumentKind, DocumentSlot] = Field(default_factory=_empty_slots)
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status != ApprovalStatus.IN_REVIEW

    @property
    def all_approved(self) -> bool:
        return all(slot.status == SlotStatus.APPROVED for slot in self.slots.values())


class AppliedDecision(BaseModel):
    """Result of a state machine mutation."""
    aggregate: ApprovalAggregate
    changed: bool = Field(..., description="False when the decision was an idempotent no-op")
    previous_status: ApprovalStatus

    @property
    def status_changed(self) -> bool:
        return self.aggregate.status != self.previous_status

    @property
    def should_notify(self) -> bool:
        """Edge trigger: the aggregate just entered approved or rejected."""
        return self.status_changed and self.aggregate.is_terminal


# ─── Verification Outcome ───────────────────────────────────────────

class VerificationOutcome(BaseModel):
    """Complete result of verifying one document submission."""
    entity_id: str
    kind: DocumentKind
    extraction: ExtractionResult
    verdict: VerifierVerdict
    score: int = Field(..., ge=0, le=100, description="Confidence score 0-100")
    decision: Decision
    note: Optional[str] = None
    aggregate_status: ApprovalStatus
    status_changed: bool = False
    verified_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def should_notify(self) -> bool:
        return self.status_changed and self.aggregate_status != ApprovalStatus.IN_REVIEW


# ─── Batch Processing ───────────────────────────────────────────────

class VerificationRequest(BaseModel):
    """One document verification request."""
    entity_id: str
    kind: str = Field(..., description="Document kind value, validated by the orchestrator")
    document_ref: str


class BatchItemResult(BaseModel):
    """Outcome or hard failure for one batch request."""
    request: VerificationRequest
    outcome: Optional[VerificationOutcome] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None


class BatchReport(BaseModel):
    """Batch results in input order with derived counts."""
    items: list[BatchItemResult]
    approved: int = 0
    rejected: int = 0
    pending_review: int = 0
    hard_failed: int = 0

    @classmethod
    def from_items(cls, items: list[BatchItemResult]) -> "BatchReport":
        counts = {outcome: 0 for outcome in DecisionOutcome}
        hard_failed = 0
        for item in items:
            if item.outcome is None:
                hard_failed += 1
            else:
                counts[item.outcome.decision.outcome] += 1
        return cls(
            items=items,
            approved=counts[DecisionOutcome.AUTO_APPROVE],
            rejected=counts[DecisionOutcome.AUTO_REJECT],
            pending_review=counts[DecisionOutcome.MANUAL_REVIEW],
            hard_failed=hard_failed,
        )


# ─── API Requests / Responses ───────────────────────────────────────

class ReviewRequest(BaseModel):
    """Reviewer action on a transporter."""
    action: ReviewAction
    reason: Optional[str] = None
    expiry_date: Optional[date] = Field(
        None, description="Document expiry — required to approve licence or insurance"
    )
    skip_auto_verification: bool = False


class ReviewResponse(BaseModel):
    """Result of a reviewer action."""
    message: str
    aggregate: ApprovalAggregate
    verification: Optional[VerificationOutcome] = None


class BulkVerifyRequest(BaseModel):
    """Bulk verification of every submitted document for a list of transporters."""
    transporter_ids: list[str] = Field(..., min_length=1)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    document_intelligence_status: str
    identity_verifier_status: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
