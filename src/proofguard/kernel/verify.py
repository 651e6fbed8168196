"""Verification Runner: structural pre-checks, then the Verification Oracle.

The pre-checks are cheap and run first. They are the main defense against
accidental or malicious mutation of a stored record, and they keep the
oracle (a full cryptographic verification) from running on proofs that are
visibly malformed.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from proofguard.codes import ErrorCode
from proofguard.contracts import (
    OracleFailure,
    ProofHasher,
    ShapeProvider,
    VerificationOracle,
)
from proofguard.errors import OracleUnavailableError, StructuralMismatchError
from proofguard.kernel.record import (
    ErrorDetail,
    ProofRecord,
    VerificationResult,
    format_timestamp,
    utc_now,
)
from proofguard.kernel.shape import check_shape

logger = logging.getLogger(__name__)

METHOD_PRECHECK = "structural_precheck"
METHOD_ORACLE = "oracle"


class VerificationRunner:
    """Replays a stored record's inputs and proof through the oracle."""

    def __init__(
        self,
        oracle: VerificationOracle,
        shape_provider: Optional[ShapeProvider] = None,
        hasher: Optional[ProofHasher] = None,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.oracle = oracle
        self.shape_provider = shape_provider
        self.hasher = hasher
        self._clock = clock
        self._timer = timer

    def precheck(self, record: ProofRecord) -> None:
        """Raise StructuralMismatchError if the record is visibly malformed."""
        if self.shape_provider is not None:
            shape = self.shape_provider.expected_shape(record.input.length)
            check_shape(record.proof_objects, shape)
        else:
            logger.debug("no shape provider configured; cardinality checks skipped")

        if self.hasher is not None:
            recomputed = self.hasher.hash_proof(record.input, record.proof_objects)
            if recomputed != record.proof_hash:
                raise StructuralMismatchError(
                    f"Recomputed proof hash {recomputed} does not match stored {record.proof_hash}",
                    code=ErrorCode.PROOF_HASH_MISMATCH,
                )

    def _result(
        self,
        record: ProofRecord,
        started: float,
        is_valid: bool,
        method: str,
        error_detail: Optional[ErrorDetail] = None,
    ) -> VerificationResult:
        return VerificationResult(
            record_id=record.record_id,
            is_valid=is_valid,
            duration_secs=max(0.0, self._timer() - started),
            error_detail=error_detail,
            proof_objects_count=len(record.proof_objects),
            original_proof_hash=record.proof_hash,
            verification_method=method,
            timestamp=format_timestamp(self._clock()),
        )

    def verify(self, record: ProofRecord) -> VerificationResult:
        """Verify one record.

        Returns:
            VerificationResult; is_valid is False with an error_detail when a
            pre-check fails (oracle not invoked) or the oracle rejects the proof

        Raises:
            OracleUnavailableError: the oracle could not complete
        """
        started = self._timer()
        try:
            self.precheck(record)
        except StructuralMismatchError as e:
            logger.warning("record %s failed structural pre-check: %s", record.record_id, e.message)
            return self._result(
                record,
                started,
                is_valid=False,
                method=METHOD_PRECHECK,
                error_detail=ErrorDetail(code=e.code.value, message=e.message),
            )

        try:
            ok = self.oracle.verify(
                record.input.length,
                record.input.block_commitment,
                record.input.nonce,
                record.proof_objects,
            )
        except OracleFailure as e:
            raise OracleUnavailableError(
                f"Verification oracle could not complete for '{record.record_id}': {e.diagnostic}"
            ) from e

        if ok is not True:
            logger.warning("oracle rejected record %s", record.record_id)
            return self._result(
                record,
                started,
                is_valid=False,
                method=METHOD_ORACLE,
                error_detail=ErrorDetail(
                    code=ErrorCode.ORACLE_REJECTED.value,
                    message="Verification oracle judged the proof invalid",
                ),
            )
        logger.info("record %s verified valid", record.record_id)
        return self._result(record, started, is_valid=True, method=METHOD_ORACLE)
