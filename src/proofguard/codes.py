"""Code constants for proofguard errors, verdicts and verification details.

These constants prevent stringly-typed codes and ensure client code
(including external tooling reading the JSON reports) uses the same values.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes carried by ProofGuardError and VerificationResult.error_detail."""

    # Capture
    PROOF_GENERATION_FAILED = "PROOF_GENERATION_FAILED"

    # Storage
    DUPLICATE_RECORD = "DUPLICATE_RECORD"
    NOT_FOUND = "NOT_FOUND"
    EMPTY_STORE = "EMPTY_STORE"
    PERSIST_FAILED = "PERSIST_FAILED"
    INVALID_RECORD = "INVALID_RECORD"

    # Structural pre-checks
    CARDINALITY_MISMATCH = "CARDINALITY_MISMATCH"
    MISSING_SUBSTRUCTURE = "MISSING_SUBSTRUCTURE"
    INCONSISTENT_SUBSTRUCTURE = "INCONSISTENT_SUBSTRUCTURE"
    PROOF_HASH_MISMATCH = "PROOF_HASH_MISMATCH"

    # Oracle
    ORACLE_REJECTED = "ORACLE_REJECTED"
    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"

    # Pipeline
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    CONFIG_INVALID = "CONFIG_INVALID"
    ENGINE_LOAD_FAILED = "ENGINE_LOAD_FAILED"


class Verdict(str, Enum):
    """Outcome of comparing a candidate record against a baseline."""

    IMPROVED = "IMPROVED"
    REGRESSED = "REGRESSED"
    UNCHANGED = "UNCHANGED"
    HASH_MISMATCH = "HASH_MISMATCH"


class Slot(str, Enum):
    """Record Store partitions."""

    BASELINE = "baseline"
    HISTORY = "history"


class RunState(str, Enum):
    """Pipeline run states."""

    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    PERSISTED = "PERSISTED"
    VERIFYING = "VERIFYING"
    COMPARING = "COMPARING"
    DONE = "DONE"
    ABORTED = "ABORTED"
