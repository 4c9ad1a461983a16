"""
Verification Orchestrator.
Runs extraction and identity verification for one document submission,
scores and decides the result, and applies the decision to the
transporter's approval state.
"""

import asyncio
import logging
import time
from datetime import date
from typing import Callable

from ..config import get_settings
from ..errors import InvalidInput, NotFound
from ..models.enums import DecisionOutcome, DocumentKind
from ..models.schemas import ExtractionResult, VerificationOutcome, VerifierVerdict
from ..utils.helpers import is_valid_document_ref, parse_document_date
from .approval_state import ApprovalStateMachine
from .cross_checks import cross_check
from .decision_engine import DecisionEngine
from .extractor import BaseDocumentExtractor
from .identity_verifier import BaseIdentityVerifier
from .scorer import ConfidenceScorer

logger = logging.getLogger(__name__)

MANUAL_REVIEW_NOTE = "Unable to automatically verify — routed to manual review"


def coerce_kind(kind) -> DocumentKind:
    """Accept a DocumentKind or its string value."""
    try:
        return DocumentKind(kind)
    except ValueError:
        raise InvalidInput(f"Unknown document kind: {kind!r}") from None


class VerificationOrchestrator:
    """
    Composition root for single-document verification.

    The extractor and verifier run concurrently, each under its own
    timeout. Their failures become ``success=False`` results; the decision
    is applied to the approval state exactly once, after both resolve.
    """

    def __init__(
        self,
        extractor: BaseDocumentExtractor,
        verifier: BaseIdentityVerifier,
        store,
        state_machine: ApprovalStateMachine,
        scorer: ConfidenceScorer | None = None,
        decision_engine: DecisionEngine | None = None,
        timeout_seconds: float | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.extractor = extractor
        self.verifier = verifier
        self.store = store
        self.state_machine = state_machine
        self.scorer = scorer or ConfidenceScorer()
        self.decision_engine = decision_engine or DecisionEngine()
        self.timeout = timeout_seconds or get_settings().upstream_timeout_seconds
        self._today = today

    async def verify(self, entity_id: str, kind, document_ref: str) -> VerificationOutcome:
        """
        Verify one document submission.

        1. Validates the document kind and reference
        2. Loads the transporter record
        3. Runs OCR extraction and identity verification concurrently
        4. Cross-checks OCR output against the record, then scores and decides
        5. Applies the decision to the approval state

        Raises:
            InvalidInput: unknown kind or malformed document reference
            NotFound: no transporter record for entity_id
            IllegalTransition: the decision conflicts with a final approval state
        """
        start_time = time.time()

        # ── Step 1: Validate Input ───────────────────────────────
        kind = coerce_kind(kind)
        if not is_valid_document_ref(document_ref):
            raise InvalidInput(f"Malformed document reference: {document_ref!r}")

        # ── Step 2: Load Transporter ─────────────────────────────
        record = await self.store.get_entity(entity_id)
        if record is None:
            raise NotFound(f"Transporter not found: {entity_id}")

        # ── Step 3: Extract + Verify (concurrently) ──────────────
        extraction, verdict = await asyncio.gather(
            self._extract(document_ref, kind),
            self._verify_identity(kind, record.identifying_fields(kind)),
        )

        # ── Step 4: Cross-check, Score & Decide ──────────────────
        scored, verdict = cross_check(kind, extraction, verdict, record, self._today())
        score = self.scorer.score(kind, scored, verdict)
        decision = self.decision_engine.decide(kind, score, verdict)

        note = None
        if not extraction.success and not verdict.success:
            note = MANUAL_REVIEW_NOTE

        expires_on = None
        if decision.outcome == DecisionOutcome.AUTO_APPROVE:
            expires_on = parse_document_date(extraction.fields.get("expiry_date"))

        # ── Step 5: Apply Decision ───────────────────────────────
        applied = await self.state_machine.apply_decision(
            entity_id, kind, decision, score=score, expires_on=expires_on
        )

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"Verified {kind.value} for {entity_id} in {processing_time:.0f}ms "
            f"| Score: {score} | Decision: {decision.outcome.value} "
            f"| Status: {applied.aggregate.status.value}"
        )

        return VerificationOutcome(
            entity_id=entity_id,
            kind=kind,
            extraction=extraction,
            verdict=verdict,
            score=score,
            decision=decision,
            note=note,
            aggregate_status=applied.aggregate.status,
            status_changed=applied.status_changed,
        )

    async def _extract(self, document_ref: str, kind: DocumentKind) -> ExtractionResult:
        try:
            return await asyncio.wait_for(
                self.extractor.extract(document_ref, kind), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Extraction timed out after {self.timeout}s for {kind.value}")
            return ExtractionResult.failed(kind, f"Extraction timed out after {self.timeout}s")
        except Exception as e:
            logger.error(f"Extraction failed for {kind.value}: {str(e)}")
            return ExtractionResult.failed(kind, f"Extraction error: {str(e)}")

    async def _verify_identity(self, kind: DocumentKind, identifying_fields: dict) -> VerifierVerdict:
        try:
            return await asyncio.wait_for(
                self.verifier.verify(kind, identifying_fields), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Identity verification timed out after {self.timeout}s for {kind.value}")
            return VerifierVerdict.failed(kind, f"Verification timed out after {self.timeout}s")
        except Exception as e:
            logger.error(f"Identity verification failed for {kind.value}: {str(e)}")
            return VerifierVerdict.failed(kind, f"Verification error: {str(e)}")
