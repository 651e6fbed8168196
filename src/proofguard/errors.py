"""Error taxonomy for the proof-regression pipeline.

Every stage raises a ProofGuardError subclass with a stable code. Nothing is
retried and nothing is swallowed: errors abort the current run and reach the
caller with their context attached.
"""

from typing import TYPE_CHECKING, Optional

from proofguard.codes import ErrorCode

if TYPE_CHECKING:
    from proofguard.kernel.record import ProofRecord, VerificationResult


class ProofGuardError(Exception):
    """Base error carrying a stable code and a human-readable message."""

    default_code = ErrorCode.INVALID_RECORD

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(f"[{self.code.value}] {message}")

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
        }


class ProofGenerationError(ProofGuardError):
    """The Proving Engine failed to produce a proof."""

    default_code = ErrorCode.PROOF_GENERATION_FAILED

    def __init__(self, message: str, diagnostic: Optional[str] = None):
        self.diagnostic = diagnostic
        super().__init__(message)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["diagnostic"] = self.diagnostic
        return out


class DuplicateRecordError(ProofGuardError):
    """A record id already exists in the target slot."""

    default_code = ErrorCode.DUPLICATE_RECORD


class NotFoundError(ProofGuardError):
    """No record exists under the requested id."""

    default_code = ErrorCode.NOT_FOUND


class EmptyStoreError(ProofGuardError):
    """The requested slot holds no records."""

    default_code = ErrorCode.EMPTY_STORE


class StructuralMismatchError(ProofGuardError):
    """A cheap structural pre-check rejected the proof before the oracle ran."""

    default_code = ErrorCode.CARDINALITY_MISMATCH


class OracleUnavailableError(ProofGuardError):
    """The Verification Oracle could not complete (distinct from an invalid judgment)."""

    default_code = ErrorCode.ORACLE_UNAVAILABLE


class RecordPersistError(ProofGuardError):
    """A proof was generated but could not be persisted.

    The full record is attached so the (expensive) proving work is never lost.
    """

    default_code = ErrorCode.PERSIST_FAILED

    def __init__(
        self,
        message: str,
        record: "ProofRecord",
        cause_code: Optional[ErrorCode] = None,
    ):
        self.record = record
        self.cause_code = cause_code
        super().__init__(message)

    def to_dict(self) -> dict:
        from proofguard._internal.io.record_io import record_to_document

        out = super().to_dict()
        out["cause_code"] = self.cause_code.value if self.cause_code else None
        out["record"] = record_to_document(self.record)
        return out


class VerificationFailedError(ProofGuardError):
    """Verification completed and judged the record invalid."""

    default_code = ErrorCode.VERIFICATION_FAILED

    def __init__(self, message: str, result: "VerificationResult"):
        self.result = result
        super().__init__(message)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["verification"] = self.result.model_dump(mode="json")
        return out


class ConfigError(ProofGuardError, ValueError):
    """Configuration could not be loaded or failed validation."""

    default_code = ErrorCode.CONFIG_INVALID


class EngineLoadError(ProofGuardError):
    """An engine or oracle factory string could not be resolved."""

    default_code = ErrorCode.ENGINE_LOAD_FAILED
