"""
Cross-checks between OCR output and the record.
Run after extraction and identity verification have both resolved, since
they need the extracted fields and the verifier's verdict together.
"""

import logging
from datetime import date

from ..models.enums import DocumentKind
from ..models.schemas import ExtractionResult, TransporterRecord, VerifierVerdict
from ..utils.helpers import parse_document_date

logger = logging.getLogger(__name__)


def insurance_dates_valid(extraction: ExtractionResult, today: date) -> bool | None:
    """
    Check that the policy is in force today.

    Returns None when neither date could be read, so the check is skipped.
    """
    start = parse_document_date(extraction.fields.get("start_date"))
    expiry = parse_document_date(extraction.fields.get("expiry_date"))
    if start is None and expiry is None:
        return None
    if start is not None and start > today:
        return False
    if expiry is not None and expiry < today:
        return False
    return True


def id_number_matches(extraction: ExtractionResult, record: TransporterRecord) -> bool | None:
    """Compare the OCR ID number with the one on record. None if either is missing."""
    extracted = (extraction.fields.get("id_number") or "").strip()
    on_record = (record.id_number or "").strip()
    if not extracted or not on_record:
        return None
    return extracted == on_record


def cross_check(
    kind: DocumentKind,
    extraction: ExtractionResult,
    verdict: VerifierVerdict,
    record: TransporterRecord,
    today: date,
) -> tuple[ExtractionResult, VerifierVerdict]:
    """
    Apply the per-kind consistency rules.

    Returns the extraction to score and the verdict to decide on:
    - insurance outside its start/expiry window makes the verdict invalid
    - an OCR ID number that differs from the record withholds the
      id_number field from scoring, so the document goes to review

    A failed extraction or verdict is returned unchanged.
    """
    if not extraction.success or not verdict.success:
        return extraction, verdict

    if kind == DocumentKind.INSURANCE:
        dates_valid = insurance_dates_valid(extraction, today)
        if dates_valid is not None:
            payload = {**verdict.payload, "dates_valid": dates_valid}
            verdict = verdict.model_copy(
                update={"is_valid": verdict.is_valid and dates_valid, "payload": payload}
            )
            if not dates_valid:
                logger.info(f"Insurance for {record.entity_id} is outside its cover period")

    elif kind == DocumentKind.NATIONAL_ID:
        matches = id_number_matches(extraction, record)
        if matches is not None:
            verdict = verdict.model_copy(
                update={"payload": {**verdict.payload, "ocr_match": matches}}
            )
        if matches is False:
            logger.info(f"OCR ID number does not match record for {record.entity_id}")
            fields = {**extraction.fields, "id_number": None}
            extraction = extraction.model_copy(update={"fields": fields})

    return extraction, verdict
