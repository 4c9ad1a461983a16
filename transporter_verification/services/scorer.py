"""
Confidence Scoring Service.
Combines OCR extraction output and the identity verifier verdict into a
bounded 0-100 confidence score using a per-document weight table.
"""

import logging
from ..models.enums import DocumentKind
from ..models.schemas import ExtractionResult, VerifierVerdict
from ..utils.helpers import parse_document_date

logger = logging.getLogger(__name__)

# Points awarded per present, well-formed signal. The verifier weight is
# awarded whenever the verification call completed, whatever its verdict.
SCORING_WEIGHTS = {
    DocumentKind.DRIVER_LICENSE: {
        "verifier": 70,
        "fields": {"license_number": 20, "expiry_date": 10},
    },
    DocumentKind.INSURANCE: {
        "verifier": 50,
        "fields": {"policy_number": 25, "expiry_date": 15, "vehicle_reg_no": 10},
    },
    DocumentKind.NATIONAL_ID: {
        "verifier": 60,
        "fields": {"id_number": 25, "date_of_birth": 15},
    },
}

DATE_FIELDS = {"expiry_date", "start_date", "date_of_birth"}

MAX_SCORE = 100


class ConfidenceScorer:
    """Pure, table-driven confidence scorer."""

    def __init__(self, weights: dict | None = None):
        self.weights = weights or SCORING_WEIGHTS

    def score(
        self, kind: DocumentKind, extraction: ExtractionResult, verdict: VerifierVerdict
    ) -> int:
        """
        Score the corroborating signal for one document submission.

        Args:
            kind: Document kind — selects the weight table
            extraction: OCR extraction result (may be partial or failed)
            verdict: Identity verifier verdict (may be failed)

        Returns:
            Integer confidence score clamped to [0, 100]
        """
        rules = self.weights[kind]
        total = 0

        if verdict.success:
            total += max(rules["verifier"], 0)

        for field_name, weight in rules["fields"].items():
            if self._is_well_formed(field_name, extraction.fields.get(field_name)):
                total += max(weight, 0)

        return max(0, min(total, MAX_SCORE))

    @staticmethod
    def _is_well_formed(field_name: str, value: str | None) -> bool:
        if value is None or not str(value).strip():
            return False
        if field_name in DATE_FIELDS:
            return parse_document_date(value) is not None
        return True
