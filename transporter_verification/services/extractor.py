"""
Document text extraction service using Azure AI Document Intelligence.
Reads the text of a submitted transporter document and parses the
fields each document kind needs for verification.
"""

import logging
import re
from abc import ABC, abstractmethod
from azure.ai.documentintelligence.aio import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeDocumentRequest, AnalyzeResult
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError

from ..config import get_settings
from ..models.enums import DocumentKind
from ..models.schemas import ExtractionResult

logger = logging.getLogger(__name__)

DATE = r"(\d{2}/\d{2}/\d{4})"

# Field patterns per document kind; the first capture group is the value
FIELD_PATTERNS = {
    DocumentKind.DRIVER_LICENSE: {
        "license_number": re.compile(r"DL\s*([A-Z0-9]+)", re.IGNORECASE),
        "expiry_date": re.compile(DATE),
        "name": re.compile(r"NAME\s*:\s*([A-Z ]+)", re.IGNORECASE),
    },
    DocumentKind.INSURANCE: {
        "provider": re.compile(r"(JUBILEE|APA|BRITAM|CIC|MADISON|HERITAGE)", re.IGNORECASE),
        "policy_number": re.compile(r"POLICY\s*[NO.]*\s*:?\s*([A-Z0-9]+)", re.IGNORECASE),
        "expiry_date": re.compile(r"EXPIRY\s*:?\s*" + DATE, re.IGNORECASE),
        "start_date": re.compile(r"FROM\s*:?\s*" + DATE, re.IGNORECASE),
        "vehicle_reg_no": re.compile(r"REG\s*[NO.]*\s*:?\s*([A-Z0-9]+)", re.IGNORECASE),
    },
    DocumentKind.NATIONAL_ID: {
        "id_number": re.compile(r"(?<!\d)(\d{8})(?!\d)"),
        "name": re.compile(r"([A-Z][A-Z ]+?)\s*(?=\d{8})"),
        "date_of_birth": re.compile(DATE),
    },
}


def parse_document_fields(kind: DocumentKind, text: str) -> dict[str, str | None]:
    """
    Parse the verification fields of a document from its OCR text.

    Args:
        kind: Document kind — selects the field patterns
        text: Raw OCR text

    Returns:
        Mapping of every field of the kind to its value, or None if not found
    """
    fields = {}
    for field_name, pattern in FIELD_PATTERNS[kind].items():
        match = pattern.search(text or "")
        fields[field_name] = match.group(1).strip() if match else None
    return fields


class BaseDocumentExtractor(ABC):
    """
    Extracts structured fields from a document reference.
    Implementations return ``success=False`` on failure instead of raising,
    and never fail for a document that merely lacks expected fields.
    """

    @abstractmethod
    async def extract(self, document_ref: str, kind: DocumentKind) -> ExtractionResult:
        ...


class AzureDocumentExtractor(BaseDocumentExtractor):
    """Extracts document text with Azure AI Document Intelligence."""

    def __init__(self, endpoint: str | None = None, key: str | None = None):
        settings = get_settings()
        self.endpoint = endpoint or settings.azure_document_intelligence_endpoint
        self.key = key or settings.azure_document_intelligence_key
        self.model_id = settings.azure_document_intelligence_model

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.key)

    async def extract(self, document_ref: str, kind: DocumentKind) -> ExtractionResult:
        """
        Extract verification fields from a document URL.

        Args:
            document_ref: URL of the uploaded document image/PDF
            kind: Document kind being verified

        Returns:
            ExtractionResult with parsed fields and raw text
        """
        if not self.configured:
            logger.warning("Azure Document Intelligence is not configured — skipping extraction")
            return ExtractionResult.failed(kind, "Document Intelligence not configured")

        logger.info(f"Extracting with model: {self.model_id} for kind: {kind.value}")

        try:
            async with DocumentIntelligenceClient(
                endpoint=self.endpoint, credential=AzureKeyCredential(self.key)
            ) as client:
                poller = await client.begin_analyze_document(
                    self.model_id, AnalyzeDocumentRequest(url_source=document_ref)
                )
                result: AnalyzeResult = await poller.result()
        except AzureError as e:
            logger.error(f"Extraction failed: {str(e)}")
            return ExtractionResult.failed(kind, f"Extraction error: {str(e)}")

        text = result.content or ""
        fields = parse_document_fields(kind, text)
        found = sum(1 for value in fields.values() if value)
        logger.info(f"Extracted {found}/{len(fields)} fields from {kind.value} document")

        return ExtractionResult(kind=kind, fields=fields, raw_text=text, success=True)
