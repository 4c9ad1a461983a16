"""Tests for the transporter review API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from transporter_verification.main import app
from transporter_verification.models.enums import DocumentKind
from transporter_verification.routers import transporters
from transporter_verification.services.container import build_services
from transporter_verification.services.storage import InMemoryEntityStore


@pytest.fixture
def services(monkeypatch, fake_extractor, fake_verifier, notifier, record_factory):
    store = InMemoryEntityStore()
    asyncio.run(store.put_entity(record_factory("T1")))
    services = build_services(
        extractor=fake_extractor,
        verifier=fake_verifier,
        store=store,
        notifier=notifier,
    )
    monkeypatch.setattr(transporters, "services", services)
    return services


@pytest.fixture
def client(services):
    with TestClient(app) as client:
        yield client


def test_approving_every_document_approves_and_notifies_once(client, services):
    for action in ("approve-dl", "approve-insurance", "approve-id"):
        response = client.post("/api/v1/transporters/T1/review", json={"action": action})
        assert response.status_code == 200

    body = response.json()
    assert body["aggregate"]["status"] == "approved"
    assert services.notifier.sent == [("T1", "approved")]


def test_auto_reject_short_circuits_review(client, services, fake_verifier):
    fake_verifier.valid[DocumentKind.DRIVER_LICENSE] = False

    response = client.post("/api/v1/transporters/T1/review", json={"action": "approve-dl"})

    assert response.status_code == 200
    body = response.json()
    assert "auto-rejected" in body["message"]
    assert body["aggregate"]["status"] == "rejected"
    assert services.notifier.sent == [("T1", "rejected")]


def test_auto_approval_reports_ignored_reviewer_expiry(client):
    response = client.post(
        "/api/v1/transporters/T1/review",
        json={"action": "approve-dl", "expiry_date": "2029-01-01"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"].startswith("Driver license auto-approved")
    assert "expiry_date 2029-01-01 not applied" in body["message"]
    assert body["aggregate"]["slots"]["driver_license"]["expires_on"] == "2030-12-31"


def test_auto_approval_with_matching_expiry(client):
    response = client.post(
        "/api/v1/transporters/T1/review",
        json={"action": "approve-dl", "expiry_date": "2030-12-31"},
    )

    assert response.status_code == 200
    assert "not applied" not in response.json()["message"]


def test_manual_approval_requires_expiry_date(client):
    response = client.post(
        "/api/v1/transporters/T1/review",
        json={"action": "approve-insurance", "skip_auto_verification": True},
    )
    assert response.status_code == 400


def test_reject_then_reject_again(client):
    first = client.post("/api/v1/transporters/T1/review", json={"action": "reject", "reason": "Fake documents"})
    second = client.post("/api/v1/transporters/T1/review", json={"action": "reject"})

    assert first.status_code == 200
    assert first.json()["aggregate"]["rejection_reason"] == "Fake documents"
    assert second.status_code == 400


def test_late_approval_after_rejection_is_recorded(client):
    client.post("/api/v1/transporters/T1/review", json={"action": "reject"})
    response = client.post(
        "/api/v1/transporters/T1/review",
        json={"action": "approve-id", "skip_auto_verification": True},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["aggregate"]["status"] == "rejected"
    assert body["aggregate"]["slots"]["national_id"]["status"] == "approved"


def test_reapproving_rejected_document_conflicts(client, fake_verifier):
    fake_verifier.valid[DocumentKind.DRIVER_LICENSE] = False
    client.post("/api/v1/transporters/T1/review", json={"action": "approve-dl"})

    response = client.post(
        "/api/v1/transporters/T1/review",
        json={
            "action": "approve-dl",
            "skip_auto_verification": True,
            "expiry_date": "2030-12-31",
        },
    )
    assert response.status_code == 409


def test_reopen_after_rejection(client):
    client.post("/api/v1/transporters/T1/review", json={"action": "reject"})

    response = client.post("/api/v1/transporters/T1/reopen")

    assert response.status_code == 200
    assert response.json()["status"] == "in_review"


def test_unknown_transporter(client):
    response = client.post("/api/v1/transporters/NOPE/review", json={"action": "approve-dl"})
    assert response.status_code == 404


def test_bulk_verify(client):
    response = client.post(
        "/api/v1/transporters/bulk-verify", json={"transporter_ids": ["T1", "GHOST"]}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["approved"] == 3
    assert body["hard_failed"] == 1
    assert body["items"][3]["error_type"] == "NotFound"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
