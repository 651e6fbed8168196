"""Regression Comparator: correctness first, then performance.

A pure function of its two records. Hash equality is byte-exact; any hash
difference is a HASH_MISMATCH regardless of how the timings moved.
"""

from proofguard.codes import Verdict
from proofguard.kernel.record import ComparisonReport, ProofRecord

DEFAULT_THRESHOLD_PERCENT = 1.0


def classify(duration_delta_percent: float, threshold_percent: float) -> Verdict:
    """Map a relative duration change to a verdict.

    |pct| < threshold -> UNCHANGED, pct <= -threshold -> IMPROVED,
    pct >= threshold -> REGRESSED.
    """
    if abs(duration_delta_percent) < threshold_percent:
        return Verdict.UNCHANGED
    if duration_delta_percent <= -threshold_percent:
        return Verdict.IMPROVED
    return Verdict.REGRESSED


def compare(
    baseline: ProofRecord,
    candidate: ProofRecord,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
) -> ComparisonReport:
    """Compare a candidate record against a baseline record.

    Args:
        baseline: trusted reference record
        candidate: record under evaluation
        threshold_percent: relative change (in percent) below which timing is
            considered unchanged; must be > 0

    Returns:
        ComparisonReport with signed deltas (candidate - baseline)
    """
    if threshold_percent <= 0:
        raise ValueError(f"threshold_percent must be positive, got {threshold_percent}")

    hashes_equal = baseline.proof_hash == candidate.proof_hash
    delta = candidate.duration_secs - baseline.duration_secs
    if baseline.duration_secs > 0:
        percent = delta / baseline.duration_secs * 100
    elif delta == 0:
        percent = 0.0
    else:
        percent = None

    if not hashes_equal:
        verdict = Verdict.HASH_MISMATCH
    elif percent is None:
        verdict = Verdict.REGRESSED
    else:
        verdict = classify(percent, threshold_percent)

    return ComparisonReport(
        baseline_record_id=baseline.record_id,
        candidate_record_id=candidate.record_id,
        hashes_equal=hashes_equal,
        baseline_proof_hash=baseline.proof_hash,
        candidate_proof_hash=candidate.proof_hash,
        baseline_duration_secs=baseline.duration_secs,
        candidate_duration_secs=candidate.duration_secs,
        duration_delta_secs=delta,
        duration_delta_percent=percent,
        threshold_percent=threshold_percent,
        verdict=verdict,
    )
