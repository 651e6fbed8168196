"""Public API for the proofguard package.

High-level functions that return complete, structured results. The CLI is a
thin layer over these; other tooling should use them instead of importing
from _internal or wiring the kernel pieces together by hand.
"""

import os
from pathlib import Path
from typing import Optional, Union

from proofguard._internal.io.record_io import load_record_from_path
from proofguard.codes import Slot
from proofguard.config import PipelineConfig, load_config
from proofguard.kernel.compare import DEFAULT_THRESHOLD_PERCENT, compare
from proofguard.kernel.record import ComparisonReport, ProofRecord, ProveInput, VerificationResult
from proofguard.kernel.store import RecordStore
from proofguard.pipeline import Pipeline, PipelineRun

DEFAULT_BASELINE_LABEL = "master"
DEFAULT_CANDIDATE_LABEL = "candidate"


def _resolve_config(config: Optional[PipelineConfig]) -> PipelineConfig:
    return config if config is not None else load_config()


def build_pipeline(config: Optional[PipelineConfig] = None) -> Pipeline:
    """Pipeline wired from config (engines loaded from their factory strings)."""
    return Pipeline.from_config(_resolve_config(config))


def open_store(root: Union[str, os.PathLike, Path]) -> RecordStore:
    return RecordStore(Path(root))


def capture_baseline(
    config: Optional[PipelineConfig] = None,
    input: Optional[ProveInput] = None,
    source_label: str = DEFAULT_BASELINE_LABEL,
    test_name: Optional[str] = None,
    accept_hash_change: bool = False,
) -> PipelineRun:
    """Prove the configured input and make the result the new baseline.

    The previous baseline, if any, becomes the comparison reference, so a
    baseline refresh doubles as a determinism check. A refresh that changes
    the proof hash is only promoted with accept_hash_change.
    """
    config = _resolve_config(config)
    return Pipeline.from_config(config).run(
        input if input is not None else config.prove_input(),
        source_label,
        slot=Slot.BASELINE,
        test_name=config.test_name if test_name is None else test_name,
        accept_hash_change=accept_hash_change,
    )


def capture_candidate(
    config: Optional[PipelineConfig] = None,
    input: Optional[ProveInput] = None,
    source_label: str = DEFAULT_CANDIDATE_LABEL,
    test_name: Optional[str] = None,
) -> PipelineRun:
    """Prove the configured input into history and compare it against the baseline.

    Raises:
        EmptyStoreError: no baseline has been captured yet (nothing is proved)
    """
    config = _resolve_config(config)
    return Pipeline.from_config(config).run(
        input if input is not None else config.prove_input(),
        source_label,
        slot=Slot.HISTORY,
        test_name=config.test_name if test_name is None else test_name,
    )


def verify_record(record_id: str, config: Optional[PipelineConfig] = None) -> VerificationResult:
    return build_pipeline(config).verify_record(record_id)


def compare_records(
    baseline_id: Optional[str] = None,
    candidate_id: Optional[str] = None,
    config: Optional[PipelineConfig] = None,
) -> ComparisonReport:
    """Compare two stored records (default: baseline vs most recent history record)."""
    return build_pipeline(config).compare_records(baseline_id, candidate_id)


def load_record(path: Union[str, os.PathLike, Path]) -> ProofRecord:
    """Load a persisted record document from any path (not necessarily a store)."""
    return load_record_from_path(Path(path))


def compare_record_files(
    baseline_path: Union[str, os.PathLike, Path],
    candidate_path: Union[str, os.PathLike, Path],
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
) -> ComparisonReport:
    """Compare two record documents on disk without opening a store."""
    return compare(load_record(baseline_path), load_record(candidate_path), threshold_percent)
