"""
Decision Engine.
Applies per-document thresholds to a confidence score and a verifier
verdict, producing auto-approve, auto-reject or manual review.
"""

import logging
from ..models.enums import DocumentKind
from ..models.schemas import Decision, VerifierVerdict

logger = logging.getLogger(__name__)

# (reject floor, approve floor) per document kind
DECISION_THRESHOLDS = {
    DocumentKind.DRIVER_LICENSE: (80, 90),
    DocumentKind.INSURANCE: (70, 85),
    DocumentKind.NATIONAL_ID: (80, 90),
}

DOCUMENT_LABELS = {
    DocumentKind.DRIVER_LICENSE: "Driver license",
    DocumentKind.INSURANCE: "Insurance",
    DocumentKind.NATIONAL_ID: "National ID",
}

UPSTREAM_FAILED_REASON = "Verifier unavailable — cannot decide automatically"
LOW_CONFIDENCE_REASON = "Insufficient confidence for an automated decision"


class DecisionEngine:
    """
    Deterministic auto-decision policy.

    Auto-reject needs a negative verdict AND high confidence; auto-approve
    needs a positive verdict AND enough corroborating signal. Everything
    else goes to manual review.
    """

    def __init__(self, thresholds: dict | None = None):
        self.thresholds = thresholds or DECISION_THRESHOLDS

    def decide(self, kind: DocumentKind, score: int, verdict: VerifierVerdict) -> Decision:
        reject_floor, approve_floor = self.thresholds[kind]

        if not verdict.success:
            decision = Decision.manual_review(UPSTREAM_FAILED_REASON)
        elif not verdict.is_valid and score >= reject_floor:
            decision = Decision.auto_reject(
                f"{DOCUMENT_LABELS[kind]} verification failed with high confidence"
            )
        elif verdict.is_valid and score >= approve_floor:
            decision = Decision.auto_approve()
        else:
            decision = Decision.manual_review(LOW_CONFIDENCE_REASON)

        logger.debug(
            f"Decision for {kind.value}: {decision.outcome.value} "
            f"(score={score}, valid={verdict.is_valid}, floors={reject_floor}/{approve_floor})"
        )
        return decision
