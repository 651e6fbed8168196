"""proofguard: proof-regression capture, verification and comparison."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("proofguard")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from proofguard.api import (
    capture_baseline,
    capture_candidate,
    compare_record_files,
    compare_records,
    verify_record,
)
from proofguard.codes import ErrorCode, RunState, Slot, Verdict
from proofguard.config import PipelineConfig, load_config
from proofguard.errors import ProofGuardError
from proofguard.kernel.record import (
    ComparisonReport,
    ProofObject,
    ProofRecord,
    ProveInput,
    VerificationResult,
)
from proofguard.pipeline import Pipeline, PipelineRun

__all__ = [
    "__version__",
    "capture_baseline",
    "capture_candidate",
    "compare_record_files",
    "compare_records",
    "verify_record",
    "ErrorCode",
    "RunState",
    "Slot",
    "Verdict",
    "PipelineConfig",
    "load_config",
    "ProofGuardError",
    "ComparisonReport",
    "ProofObject",
    "ProofRecord",
    "ProveInput",
    "VerificationResult",
    "Pipeline",
    "PipelineRun",
]
