"""Common helper functions for the document verification engine."""

from datetime import date, datetime
from typing import Optional
from urllib.parse import urlparse

DOCUMENT_DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y")


def mask_sensitive_data(value: Optional[str], visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging (PII protection).
    Shows only last N characters: "1234567890" → "******7890"
    """
    if not value or len(value) <= visible_chars:
        return "****"
    return "*" * (len(value) - visible_chars) + value[-visible_chars:]


def parse_document_date(value: Optional[str]) -> Optional[date]:
    """Parse a date as printed on Kenyan documents. Returns None if unparseable."""
    if not value:
        return None
    for fmt in DOCUMENT_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def is_valid_document_ref(document_ref: Optional[str]) -> bool:
    """A document reference must be an absolute http(s) URL."""
    if not document_ref or not isinstance(document_ref, str):
        return False
    parsed = urlparse(document_ref.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
