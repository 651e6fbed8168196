"""Tests for the Regression Comparator."""

import pytest

from proofguard.codes import Verdict
from proofguard.kernel.compare import DEFAULT_THRESHOLD_PERCENT, classify, compare


def test_improved_scenario(make_record):
    baseline = make_record(proof_hash="abc123", duration_secs=135.0)
    candidate = make_record(proof_hash="abc123", duration_secs=120.0)

    report = compare(baseline, candidate)

    assert report.verdict is Verdict.IMPROVED
    assert report.hashes_equal is True
    assert report.duration_delta_secs == pytest.approx(-15.0)
    assert report.duration_delta_percent == pytest.approx(-11.111, abs=1e-3)
    assert report.baseline_record_id == baseline.record_id
    assert report.candidate_record_id == candidate.record_id
    assert report.threshold_percent == DEFAULT_THRESHOLD_PERCENT


def test_hash_mismatch_scenario(make_record):
    baseline = make_record(proof_hash="abc123", duration_secs=135.0)
    candidate = make_record(proof_hash="def456", duration_secs=135.0)

    report = compare(baseline, candidate)

    assert report.verdict is Verdict.HASH_MISMATCH
    assert report.hashes_equal is False
    assert report.baseline_proof_hash == "abc123"
    assert report.candidate_proof_hash == "def456"


@pytest.mark.parametrize("candidate_duration", [1.0, 100.0, 135.0, 500.0])
def test_hash_mismatch_dominates_timing(make_record, candidate_duration):
    baseline = make_record(proof_hash="abc123", duration_secs=135.0)
    candidate = make_record(proof_hash="def456", duration_secs=candidate_duration)
    assert compare(baseline, candidate).verdict is Verdict.HASH_MISMATCH


def test_self_compare_is_unchanged(make_record):
    record = make_record(duration_secs=42.5)
    report = compare(record, record)
    assert report.verdict is Verdict.UNCHANGED
    assert report.hashes_equal is True
    assert report.duration_delta_percent == 0
    assert report.duration_delta_secs == 0


def test_regressed(make_record):
    report = compare(make_record(duration_secs=100.0), make_record(duration_secs=110.0))
    assert report.verdict is Verdict.REGRESSED
    assert report.duration_delta_percent == pytest.approx(10.0)


def test_within_threshold_is_unchanged(make_record):
    report = compare(make_record(duration_secs=100.0), make_record(duration_secs=100.5))
    assert report.verdict is Verdict.UNCHANGED


def test_custom_threshold(make_record):
    baseline = make_record(duration_secs=100.0)
    candidate = make_record(duration_secs=104.0)
    assert compare(baseline, candidate, threshold_percent=5.0).verdict is Verdict.UNCHANGED
    assert compare(baseline, candidate, threshold_percent=2.0).verdict is Verdict.REGRESSED


@pytest.mark.parametrize(
    "percent, expected",
    [
        (-1.0, Verdict.IMPROVED),
        (1.0, Verdict.REGRESSED),
        (0.999, Verdict.UNCHANGED),
        (-0.999, Verdict.UNCHANGED),
        (0.0, Verdict.UNCHANGED),
    ],
)
def test_classify_threshold_boundaries(percent, expected):
    assert classify(percent, 1.0) is expected


def test_zero_baseline_duration(make_record):
    zero = make_record(duration_secs=0.0)
    assert compare(zero, make_record(duration_secs=0.0)).duration_delta_percent == 0.0

    report = compare(zero, make_record(duration_secs=2.0))
    assert report.duration_delta_percent is None
    assert report.verdict is Verdict.REGRESSED


@pytest.mark.parametrize("threshold", [0, -1.0])
def test_non_positive_threshold_rejected(make_record, threshold):
    record = make_record()
    with pytest.raises(ValueError):
        compare(record, record, threshold_percent=threshold)


def test_compare_does_not_mutate_inputs(make_record):
    baseline = make_record(duration_secs=135.0)
    candidate = make_record(duration_secs=120.0)
    before = (baseline.model_dump(), candidate.model_dump())
    compare(baseline, candidate)
    assert (baseline.model_dump(), candidate.model_dump()) == before


def test_report_summary(make_record):
    report = compare(make_record(duration_secs=135.0), make_record(duration_secs=120.0))
    summary = report.summary()
    assert summary["verdict"] == "IMPROVED"
    assert summary["hashes_equal"] is True
