"""Shared fixtures and fake collaborators for verification engine tests."""

import asyncio
from datetime import date

import pytest
from transporter_verification.models.enums import DocumentKind
from transporter_verification.models.schemas import (
    ExtractionResult,
    TransporterRecord,
    VerifierVerdict,
)
from transporter_verification.services.approval_state import ApprovalStateMachine
from transporter_verification.services.extractor import BaseDocumentExtractor
from transporter_verification.services.identity_verifier import BaseIdentityVerifier
from transporter_verification.services.notifications import NotificationDispatcher
from transporter_verification.services.orchestrator import VerificationOrchestrator
from transporter_verification.services.storage import InMemoryEntityStore

TODAY = date(2026, 10, 18)

FULL_FIELDS = {
    DocumentKind.DRIVER_LICENSE: {
        "license_number": "AB12345",
        "expiry_date": "31/12/2030",
        "name": "JOHN KAMAU",
    },
    DocumentKind.INSURANCE: {
        "provider": "JUBILEE",
        "policy_number": "POL998877",
        "expiry_date": "30/06/2031",
        "start_date": "01/07/2025",
        "vehicle_reg_no": "KDA123A",
    },
    DocumentKind.NATIONAL_ID: {
        "id_number": "18512345",
        "name": "JOHN KAMAU",
        "date_of_birth": "14/02/1985",
    },
}


def make_record(entity_id: str) -> TransporterRecord:
    return TransporterRecord(
        entity_id=entity_id,
        name="John Kamau",
        email=f"{entity_id.lower()}@example.com",
        phone_number="+254712345678",
        driver_license_number="AB12345",
        id_number="18512345",
        insurance_policy_number="POL998877",
        insurance_provider="Jubilee Insurance",
        driver_license_url=f"https://storage.example.com/{entity_id}/dl.jpg",
        insurance_url=f"https://storage.example.com/{entity_id}/insurance.jpg",
        id_url=f"https://storage.example.com/{entity_id}/id.jpg",
    )


class FakeExtractor(BaseDocumentExtractor):
    """Returns full extractions unless told otherwise."""

    def __init__(self):
        self.results: dict[DocumentKind, ExtractionResult] = {}
        self.error: Exception | None = None
        self.delay = 0.0
        self.calls: list[tuple[str, DocumentKind]] = []

    async def extract(self, document_ref, kind):
        self.calls.append((document_ref, kind))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        if kind in self.results:
            return self.results[kind]
        return ExtractionResult(kind=kind, fields=dict(FULL_FIELDS[kind]), raw_text="ocr text")


class FakeVerifier(BaseIdentityVerifier):
    """Returns a successful valid verdict unless told otherwise."""

    provider = "Fake"

    def __init__(self):
        self.valid: dict[DocumentKind, bool] = {}
        self.error: Exception | None = None
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[tuple[DocumentKind, dict]] = []

    async def verify(self, kind, identifying_fields):
        self.calls.append((kind, identifying_fields))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error:
                raise self.error
            return VerifierVerdict(
                kind=kind, is_valid=self.valid.get(kind, True), success=True, provider=self.provider
            )
        finally:
            self.in_flight -= 1


class RecordingNotifier(NotificationDispatcher):
    """Keeps every status-change notification for assertions."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def notify_status_change(self, record, aggregate):
        self.sent.append((aggregate.entity_id, aggregate.status.value))


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def fake_extractor():
    return FakeExtractor()


@pytest.fixture
def fake_verifier():
    return FakeVerifier()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def store():
    store = InMemoryEntityStore()
    for entity_id in ("T1", "T2", "T3", "T4", "T5"):
        await store.put_entity(make_record(entity_id))
    return store


@pytest.fixture
def state_machine(store):
    return ApprovalStateMachine(store)


@pytest.fixture
def orchestrator(fake_extractor, fake_verifier, store, state_machine):
    return VerificationOrchestrator(
        extractor=fake_extractor,
        verifier=fake_verifier,
        store=store,
        state_machine=state_machine,
        timeout_seconds=0.5,
        today=lambda: TODAY,
    )
