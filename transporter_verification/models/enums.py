"""Enumerations for the transporter document verification engine."""

from enum import Enum


class DocumentKind(str, Enum):
    """Documents a transporter must submit."""
    DRIVER_LICENSE = "driver_license"
    INSURANCE = "insurance"
    NATIONAL_ID = "national_id"


class DecisionOutcome(str, Enum):
    """Automated verification decision."""
    AUTO_APPROVE = "auto_approve"
    AUTO_REJECT = "auto_reject"
    MANUAL_REVIEW = "manual_review"


class DecisionSource(str, Enum):
    """Who produced a decision."""
    ENGINE = "engine"
    REVIEWER = "reviewer"


class SlotStatus(str, Enum):
    """Per-document approval status."""
    UNSUBMITTED = "unsubmitted"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStatus(str, Enum):
    """Overall transporter approval status."""
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, Enum):
    """Reviewer actions accepted by the review endpoint."""
    APPROVE_DL = "approve-dl"
    APPROVE_INSURANCE = "approve-insurance"
    APPROVE_ID = "approve-id"
    REJECT = "reject"

    @property
    def document_kind(self) -> DocumentKind | None:
        return {
            ReviewAction.APPROVE_DL: DocumentKind.DRIVER_LICENSE,
            ReviewAction.APPROVE_INSURANCE: DocumentKind.INSURANCE,
            ReviewAction.APPROVE_ID: DocumentKind.NATIONAL_ID,
        }.get(self)
