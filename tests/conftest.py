"""Pytest configuration and shared fixtures.

No sys.path hacks - tests should import from installed proofguard package.
"""

import itertools
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from proofguard.contracts import OracleFailure, ProvingFailure
from proofguard.engines.reference import ReferenceEngine, ReferenceOracle
from proofguard.kernel.record import ProofObject, ProveInput
from proofguard.kernel.store import RecordStore

START = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


class StepClock:
    """Deterministic clock: each call returns the previous instant plus `step`."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self._ticks = itertools.count()
        self.start = start
        self.step = step

    def __call__(self) -> datetime:
        return self.start + next(self._ticks) * self.step


class ScriptedTimer:
    """perf_counter stand-in that reports a fixed duration per start/stop pair."""

    def __init__(self, *durations: float):
        self._durations = list(durations) or [1.0]
        self._now = 0.0
        self._started = False
        self._index = 0

    def __call__(self) -> float:
        if self._started:
            self._now += self._durations[min(self._index, len(self._durations) - 1)]
            self._index += 1
        self._started = not self._started
        return self._now


class FakeEngine:
    """Proving Engine returning canned outputs, or failing on demand."""

    def __init__(self, objects=None, proof_hash="abc123", failure=None):
        self.objects = objects if objects is not None else [("m-root", b"\x00\xff")]
        self.proof_hash = proof_hash
        self.failure = failure
        self.calls = []

    def prove(self, length, block_commitment, nonce):
        self.calls.append((length, tuple(block_commitment), tuple(nonce)))
        if self.failure is not None:
            raise ProvingFailure(self.failure)
        return list(self.objects), self.proof_hash


class FakeOracle:
    """Verification Oracle with a fixed verdict, or failing on demand."""

    def __init__(self, verdict=True, failure=None):
        self.verdict = verdict
        self.failure = failure
        self.calls = 0

    def verify(self, length, block_commitment, nonce, proof_objects):
        self.calls += 1
        if self.failure is not None:
            raise OracleFailure(self.failure)
        return self.verdict


@pytest.fixture
def prove_input():
    return ProveInput(length=2, block_commitment=(1, 1, 1, 1, 1), nonce=(1, 1, 1, 1, 1))


@pytest.fixture
def reference_engine():
    return ReferenceEngine()


@pytest.fixture
def reference_oracle(reference_engine):
    return ReferenceOracle(reference_engine)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(tmp_path):
    return RecordStore(tmp_path / "store")


@pytest.fixture
def make_record(prove_input):
    """Build a ProofRecord directly (no engine) with the given overrides."""
    from proofguard.kernel.record import ProofRecord, derive_record_id, format_timestamp

    counter = itertools.count()

    def _make(
        proof_hash="abc123",
        duration_secs=1.0,
        label="master",
        created=None,
        objects=None,
        test_name="baseline_small",
    ):
        created = created or START + timedelta(seconds=next(counter))
        return ProofRecord(
            record_id=derive_record_id(label, created),
            input=prove_input,
            proof_objects=tuple(objects) if objects is not None else (ProofObject(type="m-root", data="00ff"),),
            proof_hash=proof_hash,
            duration_secs=duration_secs,
            timestamp=format_timestamp(created),
            source_label=label,
            test_name=test_name,
        )

    return _make


def pytest_sessionfinish(session, exitstatus):
    """Best-effort cleanup for basetemp on Windows without patching pytest internals."""
    if os.name != "nt":
        return
    basetemp = getattr(session.config.option, "basetemp", None)
    if not basetemp:
        return
    basetemp_path = Path(basetemp)
    if not basetemp_path.exists():
        return
    try:
        import shutil
        shutil.rmtree(basetemp_path)
    except (PermissionError, OSError):
        # If cleanup fails, let it surface as a warning rather than masking errors.
        import warnings
        warnings.warn(f"Could not remove basetemp: {basetemp_path}")


@pytest.fixture(autouse=True)
def reset_proofguard_logger():
    """Undo configure_logging() between tests so caplog sees proofguard records."""
    import logging

    yield
    logger = logging.getLogger("proofguard")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
