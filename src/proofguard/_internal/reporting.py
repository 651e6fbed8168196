"""Render human-readable markdown summaries of pipeline outcomes (internal)."""

from typing import List, Optional

from proofguard.codes import Verdict
from proofguard.kernel.record import ComparisonReport, ProofRecord, VerificationResult

_VERDICT_LINES = {
    Verdict.IMPROVED: "Candidate is faster than the baseline.",
    Verdict.REGRESSED: "Candidate is slower than the baseline.",
    Verdict.UNCHANGED: "Timing is within the noise threshold.",
    Verdict.HASH_MISMATCH: "Proof hashes differ: the candidate produced a different proof.",
}


def _format_percent(percent: Optional[float]) -> str:
    if percent is None:
        return "n/a (baseline duration is 0)"
    return f"{percent:+.2f}%"


def render_record(record: ProofRecord) -> str:
    lines = [f"## Record `{record.record_id}`\n"]
    lines.append(f"- Source: `{record.source_label}`")
    if record.test_name:
        lines.append(f"- Test: `{record.test_name}`")
    lines.append(f"- Timestamp: {record.timestamp}")
    lines.append(
        f"- Input: length={record.input.length}, "
        f"block_commitment={list(record.input.block_commitment)}, "
        f"nonce={list(record.input.nonce)}"
    )
    lines.append(f"- Proof objects: {len(record.proof_objects)}")
    lines.append(f"- Proof hash: `{record.proof_hash}`")
    lines.append(f"- Duration: {record.duration_secs:.3f}s")
    return "\n".join(lines) + "\n"


def render_verification(result: VerificationResult) -> str:
    status = "VALID" if result.is_valid else "INVALID"
    lines = [f"## Verification of `{result.record_id}`: {status}\n"]
    lines.append(f"- Method: {result.verification_method}")
    lines.append(f"- Proof objects: {result.proof_objects_count}")
    lines.append(f"- Proof hash: `{result.original_proof_hash}`")
    lines.append(f"- Duration: {result.duration_secs:.3f}s")
    if result.error_detail is not None:
        lines.append(f"- Error: [{result.error_detail.code}] {result.error_detail.message}")
    return "\n".join(lines) + "\n"


def render_comparison(report: ComparisonReport) -> str:
    lines = [f"## Comparison: {report.verdict.value}\n"]
    lines.append(_VERDICT_LINES[report.verdict])
    lines.append("")
    lines.append("| | Baseline | Candidate |")
    lines.append("|---|---|---|")
    lines.append(f"| Record | `{report.baseline_record_id}` | `{report.candidate_record_id}` |")
    lines.append(f"| Proof hash | `{report.baseline_proof_hash}` | `{report.candidate_proof_hash}` |")
    lines.append(
        f"| Duration | {report.baseline_duration_secs:.3f}s | {report.candidate_duration_secs:.3f}s |"
    )
    lines.append("")
    lines.append(f"- Hashes equal: {'yes' if report.hashes_equal else 'no'}")
    lines.append(f"- Duration delta: {report.duration_delta_secs:+.3f}s")
    lines.append(f"- Relative change: {_format_percent(report.duration_delta_percent)}")
    lines.append(f"- Threshold: {report.threshold_percent}%")
    return "\n".join(lines) + "\n"


def render_run_summary(
    record: Optional[ProofRecord],
    verification: Optional[VerificationResult],
    comparison: Optional[ComparisonReport],
) -> str:
    """Markdown summary of one pipeline run; absent stages are omitted."""
    sections: List[str] = ["# Proof regression report\n"]
    if record is not None:
        sections.append(render_record(record))
    if verification is not None:
        sections.append(render_verification(verification))
    if comparison is not None:
        sections.append(render_comparison(comparison))
    elif record is not None and verification is not None:
        sections.append("## Comparison: skipped\n\nNo prior baseline to compare against.\n")
    return "\n".join(sections)
