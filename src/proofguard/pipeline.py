"""Pipeline Orchestrator: capture, persist, verify and compare one proof run.

Each run walks the state machine

    IDLE -> CAPTURING -> PERSISTED -> VERIFYING -> COMPARING -> DONE

and lands in ABORTED from any earlier state when a step fails. A failed run
re-raises its single typed error after recording it on the PipelineRun; a run
never reports partial success.

A baseline capture is proved into history like any candidate; the baseline
pointer moves only at the end of a run that verified.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from proofguard.codes import RunState, Slot, Verdict
from proofguard.config import PipelineConfig
from proofguard.contracts import (
    ProvingEngine,
    VerificationOracle,
    proof_hasher_of,
    shape_provider_of,
)
from proofguard.errors import (
    ConfigError,
    EmptyStoreError,
    ProofGuardError,
    VerificationFailedError,
)
from proofguard.kernel.capture import CaptureRecorder
from proofguard.kernel.compare import DEFAULT_THRESHOLD_PERCENT, compare
from proofguard.kernel.record import (
    ComparisonReport,
    ProofRecord,
    ProveInput,
    VerificationResult,
    utc_now,
)
from proofguard.kernel.store import RecordStore, SlotLike
from proofguard.kernel.verify import VerificationRunner

logger = logging.getLogger(__name__)

# Legal successor states; ABORTED is reachable from every non-terminal state.
_TRANSITIONS: Dict[RunState, frozenset] = {
    RunState.IDLE: frozenset({RunState.CAPTURING, RunState.ABORTED}),
    RunState.CAPTURING: frozenset({RunState.PERSISTED, RunState.ABORTED}),
    RunState.PERSISTED: frozenset({RunState.VERIFYING, RunState.ABORTED}),
    RunState.VERIFYING: frozenset({RunState.COMPARING, RunState.ABORTED}),
    RunState.COMPARING: frozenset({RunState.DONE, RunState.ABORTED}),
    RunState.DONE: frozenset(),
    RunState.ABORTED: frozenset(),
}


class PipelineRun(BaseModel):
    """Observable outcome of one pipeline run."""
    slot: Slot = Slot.HISTORY
    state: RunState = RunState.IDLE
    states: List[RunState] = Field(default_factory=lambda: [RunState.IDLE])
    record: Optional[ProofRecord] = None
    verification: Optional[VerificationResult] = None
    comparison: Optional[ComparisonReport] = None
    comparison_skipped: bool = False
    baseline_promoted: bool = False
    error: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE

    def advance(self, state: RunState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        logger.info("pipeline %s -> %s", self.state.value, state.value)
        self.state = state
        self.states.append(state)

    def abort(self, error: BaseException) -> None:
        if isinstance(error, ProofGuardError):
            self.error = error.to_dict()
        else:
            self.error = {"error": type(error).__name__, "code": None, "message": str(error)}
        logger.error("pipeline aborted in %s: %s", self.state.value, error)
        self.advance(RunState.ABORTED)

    def report(self) -> Dict[str, Any]:
        """Machine-readable run report."""
        return self.model_dump(mode="json")


class Pipeline:
    """Sequences one capture, one verification and one comparison per run."""

    def __init__(
        self,
        engine: ProvingEngine,
        oracle: VerificationOracle,
        store: RecordStore,
        threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.perf_counter,
    ):
        if threshold_percent <= 0:
            raise ConfigError(f"threshold_percent must be positive, got {threshold_percent}")
        self.engine = engine
        self.oracle = oracle
        self.store = store
        self.threshold_percent = threshold_percent
        self.recorder = CaptureRecorder(engine, store, clock=clock, timer=timer)
        self.runner = VerificationRunner(
            oracle,
            shape_provider=shape_provider_of(oracle) or shape_provider_of(engine),
            hasher=proof_hasher_of(oracle) or proof_hasher_of(engine),
            clock=clock,
            timer=timer,
        )
        self.last_run: Optional[PipelineRun] = None

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "Pipeline":
        """Build a pipeline from a PipelineConfig, loading engines from their factory strings."""
        from proofguard.engines import load_factory

        return cls(
            engine=load_factory(config.engine),
            oracle=load_factory(config.oracle),
            store=RecordStore(config.store_root),
            threshold_percent=config.threshold_percent,
        )

    def _reference_for(self, slot: Slot) -> Optional[ProofRecord]:
        if slot is Slot.HISTORY:
            return self.store.baseline()
        try:
            return self.store.baseline()
        except EmptyStoreError:
            return None

    def _promote(self, run: PipelineRun, accept_hash_change: bool) -> None:
        comparison = run.comparison
        if (
            comparison is not None
            and comparison.verdict is Verdict.HASH_MISMATCH
            and not accept_hash_change
        ):
            logger.warning(
                "%s produces a different proof than baseline %s; baseline not moved",
                run.record.record_id,
                comparison.baseline_record_id,
            )
            return
        self.store.promote(run.record.record_id)
        run.baseline_promoted = True

    def run(
        self,
        input: ProveInput,
        source_label: str,
        slot: SlotLike = Slot.HISTORY,
        test_name: str = "",
        accept_hash_change: bool = False,
    ) -> PipelineRun:
        """Capture, verify and compare one proof.

        slot="history" compares the new candidate against the current
        baseline, which must exist. slot="baseline" compares the new record
        against the previous baseline when there is one (otherwise the
        comparison is skipped) and then makes it the baseline.

        The record is always written to history first; the baseline pointer
        only moves once the record has verified. A baseline refresh whose
        proof hash differs from the previous baseline is kept in history but
        not promoted unless accept_hash_change is set.

        Raises:
            ProofGuardError: the single error that aborted the run
        """
        slot = Slot(slot)
        run = PipelineRun(slot=slot)
        self.last_run = run
        try:
            reference = self._reference_for(slot)

            run.advance(RunState.CAPTURING)
            record = self.recorder.capture(input, source_label, test_name=test_name)
            run.record = record
            run.advance(RunState.PERSISTED)

            run.advance(RunState.VERIFYING)
            result = self.runner.verify(record)
            run.verification = result
            if not result.is_valid:
                detail = result.error_detail
                raise VerificationFailedError(
                    f"Record '{record.record_id}' failed verification"
                    + (f": [{detail.code}] {detail.message}" if detail else ""),
                    result=result,
                )

            run.advance(RunState.COMPARING)
            if reference is None:
                run.comparison_skipped = True
                logger.info("no prior baseline; comparison skipped for %s", record.record_id)
            else:
                run.comparison = compare(reference, record, self.threshold_percent)
                logger.info(
                    "%s vs %s: %s",
                    reference.record_id,
                    record.record_id,
                    run.comparison.verdict.value,
                )
            if slot is Slot.BASELINE:
                self._promote(run, accept_hash_change)
            run.advance(RunState.DONE)
        except Exception as e:
            run.abort(e)
            raise
        return run

    def run_batch(
        self,
        inputs: Iterable[ProveInput],
        source_label: str,
        slot: SlotLike = Slot.HISTORY,
        test_name: str = "",
    ) -> List[PipelineRun]:
        """Run the pipeline once per input.

        A failed run is recorded (state ABORTED, error set) and the batch
        moves on to the next input.
        """
        runs = []
        for input in inputs:
            try:
                self.run(input, source_label, slot=slot, test_name=test_name)
            except ProofGuardError as e:
                logger.warning("batch run for length=%d aborted: %s", input.length, e.code.value)
            runs.append(self.last_run)
        failed = sum(1 for run in runs if not run.ok)
        if failed:
            logger.warning("%d of %d batch runs aborted", failed, len(runs))
        return runs

    def verify_record(self, record_id: str) -> VerificationResult:
        """Re-verify a stored record."""
        return self.runner.verify(self.store.get(record_id))

    def compare_records(
        self,
        baseline_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
    ) -> ComparisonReport:
        """Compare two stored records.

        Defaults: the current baseline against the most recent history record.
        """
        baseline = self.store.get(baseline_id) if baseline_id else self.store.baseline()
        candidate = self.store.get(candidate_id) if candidate_id else self.store.latest(Slot.HISTORY)
        return compare(baseline, candidate, self.threshold_percent)
