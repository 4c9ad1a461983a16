"""Tests for the confidence scorer."""

import random

import pytest
from transporter_verification.models.enums import DocumentKind
from transporter_verification.models.schemas import ExtractionResult, VerifierVerdict
from transporter_verification.services.scorer import SCORING_WEIGHTS, ConfidenceScorer


@pytest.fixture
def scorer():
    return ConfidenceScorer()


def _verdict(kind, success=True, is_valid=True):
    return VerifierVerdict(kind=kind, success=success, is_valid=is_valid)


def _extraction(kind, fields, success=True):
    return ExtractionResult(kind=kind, fields=fields, success=success)


def _random_fields(rng: random.Random, kind: DocumentKind) -> dict:
    values = ["AB12345", "", "  ", None, "31/12/2030", "2030-12-31", "not a date", "KDA123A"]
    return {name: rng.choice(values) for name in SCORING_WEIGHTS[kind]["fields"]}


def test_full_signal_scores_100(scorer):
    fields = {"license_number": "AB12345", "expiry_date": "31/12/2030"}
    score = scorer.score(
        DocumentKind.DRIVER_LICENSE,
        _extraction(DocumentKind.DRIVER_LICENSE, fields),
        _verdict(DocumentKind.DRIVER_LICENSE),
    )
    assert score == 100


def test_verifier_weight_awarded_for_completed_call_even_if_invalid(scorer):
    kind = DocumentKind.DRIVER_LICENSE
    score = scorer.score(kind, _extraction(kind, {}), _verdict(kind, is_valid=False))
    assert score == 70


def test_failed_verifier_contributes_nothing(scorer):
    kind = DocumentKind.INSURANCE
    fields = {"policy_number": "POL1", "expiry_date": "30/06/2031", "vehicle_reg_no": "KDA123A"}
    score = scorer.score(kind, _extraction(kind, fields), _verdict(kind, success=False))
    assert score == 50


def test_malformed_date_contributes_nothing(scorer):
    kind = DocumentKind.NATIONAL_ID
    fields = {"id_number": "18512345", "date_of_birth": "14th Feb"}
    score = scorer.score(kind, _extraction(kind, fields), _verdict(kind))
    assert score == 85


def test_blank_values_contribute_nothing(scorer):
    kind = DocumentKind.NATIONAL_ID
    score = scorer.score(kind, _extraction(kind, {"id_number": "   "}), _verdict(kind, success=False))
    assert score == 0


def test_score_is_clamped():
    weights = {
        DocumentKind.DRIVER_LICENSE: {"verifier": 90, "fields": {"license_number": 50}},
    }
    scorer = ConfidenceScorer(weights)
    kind = DocumentKind.DRIVER_LICENSE
    score = scorer.score(kind, _extraction(kind, {"license_number": "X1"}), _verdict(kind))
    assert score == 100


def test_negative_weights_never_subtract():
    weights = {
        DocumentKind.INSURANCE: {"verifier": 40, "fields": {"policy_number": -30}},
    }
    scorer = ConfidenceScorer(weights)
    kind = DocumentKind.INSURANCE
    score = scorer.score(kind, _extraction(kind, {"policy_number": "POL1"}), _verdict(kind))
    assert score == 40


def test_scoring_is_deterministic(scorer):
    rng = random.Random(1234)
    for _ in range(100):
        kind = rng.choice(list(DocumentKind))
        extraction = _extraction(kind, _random_fields(rng, kind), success=rng.random() > 0.3)
        verdict = _verdict(kind, success=rng.random() > 0.3, is_valid=rng.random() > 0.5)
        first = scorer.score(kind, extraction, verdict)
        assert all(scorer.score(kind, extraction, verdict) == first for _ in range(3))
        assert 0 <= first <= 100


def test_adding_a_field_never_lowers_the_score(scorer):
    rng = random.Random(99)
    for _ in range(100):
        kind = rng.choice(list(DocumentKind))
        verdict = _verdict(kind, success=rng.random() > 0.5)
        fields = _random_fields(rng, kind)
        missing = [name for name, value in fields.items() if not value]
        if not missing:
            continue
        before = scorer.score(kind, _extraction(kind, fields), verdict)
        fields[rng.choice(missing)] = "31/12/2030"
        after = scorer.score(kind, _extraction(kind, fields), verdict)
        assert after >= before
