"""Wires the verification services together for the HTTP layer."""

from dataclasses import dataclass

from ..config import get_settings
from .approval_state import ApprovalStateMachine
from .bulk_verifier import BulkVerificationCoordinator
from .extractor import AzureDocumentExtractor, BaseDocumentExtractor
from .identity_verifier import BaseIdentityVerifier, IdentityVerifier
from .notifications import LoggingNotificationDispatcher, NotificationDispatcher
from .orchestrator import VerificationOrchestrator
from .storage import InMemoryEntityStore


@dataclass
class VerificationServices:
    store: InMemoryEntityStore
    state_machine: ApprovalStateMachine
    orchestrator: VerificationOrchestrator
    coordinator: BulkVerificationCoordinator
    notifier: NotificationDispatcher


def build_services(
    extractor: BaseDocumentExtractor | None = None,
    verifier: BaseIdentityVerifier | None = None,
    store: InMemoryEntityStore | None = None,
    notifier: NotificationDispatcher | None = None,
) -> VerificationServices:
    """Build the service graph, using configured defaults for anything not given."""
    settings = get_settings()
    store = store or InMemoryEntityStore(snapshot_dir=settings.aggregate_snapshot_dir)
    state_machine = ApprovalStateMachine(store)
    orchestrator = VerificationOrchestrator(
        extractor=extractor or AzureDocumentExtractor(),
        verifier=verifier or IdentityVerifier(),
        store=store,
        state_machine=state_machine,
        timeout_seconds=settings.upstream_timeout_seconds,
    )
    coordinator = BulkVerificationCoordinator(
        orchestrator, store=store, max_concurrency=settings.bulk_max_concurrency
    )
    return VerificationServices(
        store=store,
        state_machine=state_machine,
        orchestrator=orchestrator,
        coordinator=coordinator,
        notifier=notifier or LoggingNotificationDispatcher(),
    )
