"""Capture Recorder: run the Proving Engine once and persist the result."""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Iterable, Tuple

from proofguard._internal.io.record_io import dumps_record
from proofguard.codes import Slot
from proofguard.contracts import ProvingEngine, ProvingFailure
from proofguard.errors import ProofGenerationError, ProofGuardError, RecordPersistError
from proofguard.kernel.record import (
    ProofObject,
    ProofRecord,
    ProveInput,
    derive_record_id,
    format_timestamp,
    utc_now,
)
from proofguard.kernel.store import RecordStore, SlotLike

logger = logging.getLogger(__name__)


def _coerce_objects(raw: Iterable[Any]) -> Tuple[ProofObject, ...]:
    """Accept ProofObject instances or (tag, bytes) pairs from an engine."""
    objects = []
    for item in raw:
        if isinstance(item, ProofObject):
            objects.append(item)
        else:
            tag, payload = item
            objects.append(ProofObject.from_bytes(tag, bytes(payload)))
    return tuple(objects)


class CaptureRecorder:
    """Drives the Proving Engine with fixed inputs and materializes a ProofRecord.

    No retries: proving can take hours, so re-running is an operator decision.
    """

    def __init__(
        self,
        engine: ProvingEngine,
        store: RecordStore,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.engine = engine
        self.store = store
        self._clock = clock
        self._timer = timer

    def capture(
        self,
        input: ProveInput,
        source_label: str,
        test_name: str = "",
        slot: SlotLike = Slot.HISTORY,
    ) -> ProofRecord:
        """Prove `input` once, persist the record into `slot`, and return it.

        Raises:
            ProofGenerationError: the engine reported a proving failure
            RecordPersistError: the proof succeeded but could not be stored;
                the error carries the full record
        """
        logger.info(
            "proving length=%d commitment=%s nonce=%s label=%s",
            input.length,
            list(input.block_commitment),
            list(input.nonce),
            source_label,
        )
        started = self._timer()
        try:
            raw_objects, proof_hash = self.engine.prove(
                input.length, input.block_commitment, input.nonce
            )
        except ProvingFailure as e:
            raise ProofGenerationError(
                f"Proving engine failed for length={input.length}: {e.diagnostic}",
                diagnostic=e.diagnostic,
            ) from e
        duration = max(0.0, self._timer() - started)

        created = self._clock()
        record = ProofRecord(
            record_id=derive_record_id(source_label, created),
            input=input,
            proof_objects=_coerce_objects(raw_objects),
            proof_hash=proof_hash,
            duration_secs=duration,
            timestamp=format_timestamp(created),
            source_label=source_label,
            test_name=test_name,
        )
        logger.info(
            "proof generated in %.3fs: %d objects, hash %s",
            duration,
            len(record.proof_objects),
            record.proof_hash,
        )

        try:
            self.store.put(record, slot)
        except (ProofGuardError, OSError) as e:
            logger.error(
                "proof %s generated but not persisted (%s); recovery payload follows\n%s",
                record.record_id,
                e,
                dumps_record(record),
            )
            err = RecordPersistError(
                f"Generated proof '{record.record_id}' could not be persisted: {e}",
                record=record,
                cause_code=e.code if isinstance(e, ProofGuardError) else None,
            )
            raise err from e
        return record
