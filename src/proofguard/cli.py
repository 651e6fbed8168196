"""proofguard CLI: capture, verify and compare proof records."""

import argparse
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _words(value: str) -> Tuple[int, ...]:
    """Parse a comma-separated list of unsigned integers ("1,2,3,4,5")."""
    try:
        return tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers, got {value!r}") from None


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return number


def _status(args, message: str) -> None:
    if not args.quiet:
        print(message, file=sys.stderr)


def _emit(args, name: str, payload: Dict[str, Any], markdown: Optional[str] = None) -> None:
    """Print the canonical JSON report and optionally write it (plus markdown) to --output-dir."""
    from ._internal.canonical_json import canonical_dumps

    report_json = canonical_dumps(payload)
    print(report_json)
    if args.output_dir is not None:
        output_dir = Path(args.output_dir).resolve()
        output_dir.mkdir(parents=True, exist_ok=True)
        json_path = output_dir / f"{name}.json"
        json_path.write_text(report_json + "\n", encoding="utf-8")
        _status(args, f"  JSON: {json_path}")
        if markdown is not None:
            md_path = output_dir / f"{name}.md"
            md_path.write_text(markdown, encoding="utf-8")
            _status(args, f"  Markdown: {md_path}")


def _comparison_exit_code(config, comparison) -> int:
    from .codes import Verdict

    if comparison is None:
        return EXIT_OK
    if comparison.verdict is Verdict.HASH_MISMATCH:
        return EXIT_FAILED
    if comparison.verdict is Verdict.REGRESSED and config.fail_on_regression:
        return EXIT_FAILED
    return EXIT_OK


def _print_comparison_status(args, comparison) -> None:
    percent = comparison.duration_delta_percent
    _status(args, f"  Verdict: {comparison.verdict.value}")
    _status(args, f"  Hashes equal: {'yes' if comparison.hashes_equal else 'no'}")
    _status(
        args,
        f"  Duration: {comparison.baseline_duration_secs:.3f}s -> {comparison.candidate_duration_secs:.3f}s"
        + (f" ({percent:+.2f}%)" if percent is not None else ""),
    )


def _capture(args, config) -> int:
    from .codes import Slot, Verdict
    from .errors import ProofGuardError
    from .pipeline import Pipeline
    from ._internal.reporting import render_run_summary

    slot = Slot.BASELINE if args.command == "capture-baseline" else Slot.HISTORY
    pipeline = Pipeline.from_config(config)
    try:
        run = pipeline.run(
            config.prove_input(),
            args.label,
            slot=slot,
            test_name=config.test_name,
            accept_hash_change=getattr(args, "accept_hash_change", False),
        )
    except ProofGuardError as e:
        run = pipeline.last_run
        _emit(
            args,
            args.command,
            run.report(),
            render_run_summary(run.record, run.verification, run.comparison),
        )
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    _emit(
        args,
        args.command,
        run.report(),
        render_run_summary(run.record, run.verification, run.comparison),
    )
    if slot is Slot.HISTORY:
        _status(args, "[OK] Candidate captured")
    elif run.baseline_promoted:
        _status(args, "[OK] Baseline captured")
    else:
        _status(args, "[FAILED] Baseline not moved: proof hash changed (rerun with --accept-hash-change)")
    _status(args, f"  Record: {run.record.record_id}")
    _status(args, f"  Proof hash: {run.record.proof_hash}")
    if run.comparison_skipped:
        _status(args, "  Comparison: skipped (no prior baseline)")
    else:
        _print_comparison_status(args, run.comparison)
    if slot is Slot.BASELINE and run.baseline_promoted and not run.comparison_skipped:
        # an accepted hash change is an operator decision, not a failure
        if run.comparison.verdict is Verdict.HASH_MISMATCH:
            return EXIT_OK
    return _comparison_exit_code(config, run.comparison)


def _verify(args, config) -> int:
    from .pipeline import Pipeline
    from ._internal.reporting import render_verification

    result = Pipeline.from_config(config).verify_record(args.record_id)
    _emit(args, "verify", result.model_dump(mode="json"), render_verification(result))
    status = "OK" if result.is_valid else "FAILED"
    _status(args, f"[{status}] Verification complete")
    _status(args, f"  Record: {result.record_id}")
    _status(args, f"  Method: {result.verification_method}")
    if result.error_detail is not None:
        _status(args, f"  Error: [{result.error_detail.code}] {result.error_detail.message}")
    return EXIT_OK if result.is_valid else EXIT_FAILED


def _compare(args, config) -> int:
    from .pipeline import Pipeline
    from ._internal.reporting import render_comparison

    comparison = Pipeline.from_config(config).compare_records(args.baseline_id, args.candidate_id)
    _emit(args, "compare", comparison.model_dump(mode="json"), render_comparison(comparison))
    _status(args, "[OK] Comparison complete")
    _status(args, f"  Baseline: {comparison.baseline_record_id}")
    _status(args, f"  Candidate: {comparison.candidate_record_id}")
    _print_comparison_status(args, comparison)
    return _comparison_exit_code(config, comparison)


def _list(args, config) -> int:
    from .kernel.store import RecordStore

    record_ids = RecordStore(config.store_root).list(args.slot)
    _emit(args, "list", {"slot": args.slot, "record_ids": record_ids})
    _status(args, f"[OK] {len(record_ids)} record(s) in {args.slot}")
    return EXIT_OK


def _show(args, config) -> int:
    from .kernel.store import RecordStore
    from ._internal.io.record_io import record_to_document
    from ._internal.reporting import render_record

    record = RecordStore(config.store_root).get(args.record_id)
    _emit(args, "show", record_to_document(record), render_record(record))
    return EXIT_OK


def _promote(args, config) -> int:
    from .kernel.store import RecordStore

    record = RecordStore(config.store_root).promote(args.record_id)
    _emit(args, "promote", {"baseline": record.record_id, "proof_hash": record.proof_hash})
    _status(args, f"[OK] Baseline is now {record.record_id}")
    return EXIT_OK


def _prune(args, config) -> int:
    from datetime import timedelta

    from .kernel.store import RecordStore

    deleted = RecordStore(config.store_root).prune(
        timedelta(days=args.older_than_days),
        keep_baseline=not args.include_baseline,
    )
    _emit(args, "prune", {"deleted": deleted})
    _status(args, f"[OK] Pruned {len(deleted)} record(s)")
    return EXIT_OK


_HANDLERS = {
    "capture-baseline": _capture,
    "capture-candidate": _capture,
    "verify": _verify,
    "compare": _compare,
    "list": _list,
    "show": _show,
    "promote": _promote,
    "prune": _prune,
}


def main():
    """Main CLI entry point for proofguard commands."""
    try:
        proofguard_version = get_version("proofguard")
    except PackageNotFoundError:
        proofguard_version = "dev"

    parser = argparse.ArgumentParser(
        prog="proofguard",
        description="proofguard: capture, verify and compare proofs against a trusted baseline"
    )
    parser.add_argument("--version", action="version", version=f"proofguard {proofguard_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to proofguard.toml (defaults to ./proofguard.toml when present)"
    )
    parent_parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Record store directory"
    )
    parent_parser.add_argument(
        "--threshold",
        type=_positive_float,
        default=None,
        help="Relative duration change (percent) treated as noise"
    )
    parent_parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    parent_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Also write the JSON report and a markdown summary here"
    )
    parent_parser.add_argument(
        "--fail-on-regression",
        action="store_true",
        default=None,
        help="Exit 1 when the verdict is REGRESSED"
    )
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress status output on stderr."
    )

    # Capture input arguments
    input_parser = argparse.ArgumentParser(add_help=False)
    input_parser.add_argument("--length", type=int, default=None, help="Proof input length")
    input_parser.add_argument(
        "--block-commitment",
        type=_words,
        default=None,
        help="Five comma-separated u64 words"
    )
    input_parser.add_argument("--nonce", type=_words, default=None, help="Five comma-separated u64 words")
    input_parser.add_argument("--test-name", default=None, help="Test name stored with the record")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    baseline_parser = subparsers.add_parser(
        "capture-baseline",
        help="Prove the fixed input and make the result the new baseline",
        parents=[parent_parser, input_parser]
    )
    baseline_parser.add_argument("--label", default="master", help="Source label (e.g. branch name)")
    baseline_parser.add_argument(
        "--accept-hash-change",
        action="store_true",
        help="Promote the new baseline even if its proof hash differs from the previous one"
    )

    candidate_parser = subparsers.add_parser(
        "capture-candidate",
        help="Prove the fixed input and compare the result against the baseline",
        parents=[parent_parser, input_parser]
    )
    candidate_parser.add_argument("--label", default="candidate", help="Source label (e.g. branch name)")

    verify_parser = subparsers.add_parser(
        "verify",
        help="Re-verify a stored record",
        parents=[parent_parser]
    )
    verify_parser.add_argument("record_id", help="Record id")

    compare_parser = subparsers.add_parser(
        "compare",
        help="Compare two stored records (default: baseline vs latest)",
        parents=[parent_parser]
    )
    compare_parser.add_argument("baseline_id", nargs="?", default=None, help="Baseline record id")
    compare_parser.add_argument("candidate_id", nargs="?", default=None, help="Candidate record id")

    list_parser = subparsers.add_parser(
        "list",
        help="List record ids in a slot",
        parents=[parent_parser]
    )
    list_parser.add_argument("--slot", choices=["history", "baseline"], default="history")

    show_parser = subparsers.add_parser(
        "show",
        help="Print a stored record document",
        parents=[parent_parser]
    )
    show_parser.add_argument("record_id", help="Record id")

    promote_parser = subparsers.add_parser(
        "promote",
        help="Make an existing record the baseline",
        parents=[parent_parser]
    )
    promote_parser.add_argument("record_id", help="Record id")

    prune_parser = subparsers.add_parser(
        "prune",
        help="Delete history records older than a cutoff",
        parents=[parent_parser]
    )
    prune_parser.add_argument("--older-than-days", type=_non_negative_float, required=True, help="Age cutoff in days")
    prune_parser.add_argument(
        "--include-baseline",
        action="store_true",
        help="Allow pruning the current baseline record"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_USAGE)

    from .config import load_config
    from .errors import ConfigError, ProofGuardError
    from ._internal.log import configure_logging

    try:
        config = load_config(
            args.config,
            cli_overrides={
                "store_root": args.store,
                "threshold_percent": args.threshold,
                "log_level": args.log_level,
                "fail_on_regression": args.fail_on_regression,
                "length": getattr(args, "length", None),
                "block_commitment": getattr(args, "block_commitment", None),
                "nonce": getattr(args, "nonce", None),
                "test_name": getattr(args, "test_name", None),
            },
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    configure_logging(config.log_level)

    try:
        exit_code = _HANDLERS[args.command](args, config)
    except ProofGuardError as e:
        from ._internal.canonical_json import canonical_dumps

        print(canonical_dumps(e.to_dict()))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(EXIT_FAILED)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
