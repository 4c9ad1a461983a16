"""
Bulk Verification Coordinator.
Runs the orchestrator across a batch of document submissions with bounded
concurrency. One request's hard error never aborts the batch.
"""

import asyncio
import logging
import time

from ..config import get_settings
from ..errors import NotFound, VerificationError
from ..models.enums import DocumentKind
from ..models.schemas import BatchItemResult, BatchReport, VerificationRequest
from .orchestrator import VerificationOrchestrator

logger = logging.getLogger(__name__)


class BulkVerificationCoordinator:
    """Verifies many documents concurrently, preserving input order."""

    def __init__(
        self,
        orchestrator: VerificationOrchestrator,
        store=None,
        max_concurrency: int | None = None,
    ):
        self.orchestrator = orchestrator
        self.store = store or orchestrator.store
        self.max_concurrency = max_concurrency or get_settings().bulk_max_concurrency

    async def verify_batch(self, requests: list[VerificationRequest]) -> list[BatchItemResult]:
        """
        Verify every request in its own failure boundary.

        Args:
            requests: Document verification requests

        Returns:
            One BatchItemResult per request, in input order
        """
        start_time = time.time()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(request: VerificationRequest) -> BatchItemResult:
            async with semaphore:
                try:
                    outcome = await self.orchestrator.verify(
                        request.entity_id, request.kind, request.document_ref
                    )
                    return BatchItemResult(request=request, outcome=outcome)
                except VerificationError as e:
                    logger.error(
                        f"Batch item failed: {request.entity_id}/{request.kind} — {str(e)}"
                    )
                    return BatchItemResult(
                        request=request, error=str(e), error_type=type(e).__name__
                    )
                except Exception as e:
                    logger.error(
                        f"Batch item crashed: {request.entity_id}/{request.kind} — {str(e)}",
                        exc_info=True,
                    )
                    return BatchItemResult(
                        request=request, error=str(e), error_type=type(e).__name__
                    )

        items = await asyncio.gather(*(run(request) for request in requests))

        report = BatchReport.from_items(list(items))
        total_time = (time.time() - start_time) * 1000
        logger.info(
            f"Batch of {len(requests)} verified in {total_time:.0f}ms "
            f"| Approved: {report.approved} | Rejected: {report.rejected} "
            f"| Review: {report.pending_review} | Failed: {report.hard_failed}"
        )
        return list(items)

    async def verify_entities(self, entity_ids: list[str]) -> list[BatchItemResult]:
        """
        Verify every submitted document of each transporter.
        Unknown transporters yield a NotFound item.
        """
        requests: list[VerificationRequest] = []
        missing: dict[int, BatchItemResult] = {}

        for entity_id in entity_ids:
            record = await self.store.get_entity(entity_id)
            if record is None:
                request = VerificationRequest(entity_id=entity_id, kind="", document_ref="")
                missing[len(requests) + len(missing)] = BatchItemResult(
                    request=request,
                    error=f"Transporter not found: {entity_id}",
                    error_type=NotFound.__name__,
                )
                continue
            for kind in DocumentKind:
                document_ref = record.document_ref(kind)
                if document_ref:
                    requests.append(
                        VerificationRequest(
                            entity_id=entity_id, kind=kind.value, document_ref=document_ref
                        )
                    )

        verified = iter(await self.verify_batch(requests))
        total = len(requests) + len(missing)
        return [missing[i] if i in missing else next(verified) for i in range(total)]
