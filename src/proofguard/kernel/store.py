"""Record Store: append-only, filesystem-backed persistence of proof records.

Layout under the store root:

    records/<record_id>.json   one persisted record document per id
    history.index              record ids, one per line, in insertion order
    BASELINE                   pointer document naming the current baseline id
    store.lock                 advisory lock held while the index or pointer changes

Records are never overwritten. A new record file is written to a temporary
name, fsynced, then hard-linked to its final name; the link fails if the name
exists, so concurrent writers of the same id get exactly one winner and the
losers get DuplicateRecordError. The baseline pointer is swapped with
os.replace only after the record it names is durable.

Every mutation (put, prune) holds an exclusive flock on store.lock as well as
the in-process lock, so a prune rewriting history.index cannot drop an id
appended by another process. On Windows only the in-process lock applies;
run prune there with no other writers active.
"""

import json
import logging
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional, Union

from proofguard._internal.canonical_json import canonical_pretty_dumps
from proofguard._internal.io.record_io import dumps_record, loads_record
from proofguard.codes import Slot
from proofguard.errors import DuplicateRecordError, EmptyStoreError, NotFoundError
from proofguard.kernel.record import ProofRecord, utc_now

logger = logging.getLogger(__name__)

RECORDS_DIR = "records"
HISTORY_INDEX = "history.index"
BASELINE_POINTER = "BASELINE"
LOCK_FILE = "store.lock"

_RECORD_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

SlotLike = Union[Slot, str]


def _fsync_dir(path: Path) -> None:
    if os.name == "nt":
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class RecordStore:
    """Baseline slot plus an unbounded candidate history of ProofRecords."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.records_dir = self.root / RECORDS_DIR
        self.records_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # -- paths -------------------------------------------------------------

    def _record_path(self, record_id: str) -> Path:
        if not _RECORD_ID_RE.match(record_id):
            raise NotFoundError(f"Invalid record id: {record_id!r}")
        return self.records_dir / f"{record_id}.json"

    @property
    def _index_path(self) -> Path:
        return self.root / HISTORY_INDEX

    @property
    def _pointer_path(self) -> Path:
        return self.root / BASELINE_POINTER

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Serialize writers across threads and processes."""
        with self._lock, open(self.root / LOCK_FILE, "a") as fp:
            if os.name != "nt":
                import fcntl

                fcntl.flock(fp.fileno(), fcntl.LOCK_EX)
            yield

    # -- low-level writes ---------------------------------------------------

    def _write_temp(self, directory: Path, text: str) -> Path:
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            os.unlink(tmp_name)
            raise
        return Path(tmp_name)

    def _create_record_file(self, record: ProofRecord) -> None:
        """Create records/<id>.json; first writer wins."""
        path = self._record_path(record.record_id)
        tmp = self._write_temp(self.records_dir, dumps_record(record))
        try:
            os.link(tmp, path)
        except FileExistsError:
            raise DuplicateRecordError(
                f"Record '{record.record_id}' already exists in history"
            ) from None
        finally:
            tmp.unlink()
        _fsync_dir(self.records_dir)

    def _append_index(self, record_id: str) -> None:
        with open(self._index_path, "a", encoding="utf-8", newline="\n") as f:
            f.write(record_id + "\n")
            f.flush()
            os.fsync(f.fileno())

    def _read_pointer(self) -> Optional[str]:
        try:
            data = json.loads(self._pointer_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        return data["record_id"]

    def _swap_pointer(self, record_id: str) -> None:
        tmp = self._write_temp(self.root, canonical_pretty_dumps({"record_id": record_id}))
        os.replace(tmp, self._pointer_path)
        _fsync_dir(self.root)

    # -- public contract ----------------------------------------------------

    def put(self, record: ProofRecord, slot: SlotLike = Slot.HISTORY) -> None:
        """Persist a record into a slot.

        history:  create the record; DuplicateRecordError if the id exists.
        baseline: make sure the record is durable in history (writing it if
                  absent), then atomically point the baseline at it. The prior
                  baseline stays in history. DuplicateRecordError if the id is
                  already the baseline, or if a different document is stored
                  under the same id.
        """
        slot = Slot(slot)
        with self._exclusive():
            if slot is Slot.HISTORY:
                self._create_record_file(record)
                self._append_index(record.record_id)
                logger.info("stored record %s in history", record.record_id)
                return

            current = self._read_pointer()
            if current == record.record_id:
                raise DuplicateRecordError(
                    f"Record '{record.record_id}' is already the baseline"
                )
            path = self._record_path(record.record_id)
            if path.exists():
                if path.read_text(encoding="utf-8") != dumps_record(record):
                    raise DuplicateRecordError(
                        f"A different record is already stored under id '{record.record_id}'"
                    )
            else:
                self._create_record_file(record)
                self._append_index(record.record_id)
            self._swap_pointer(record.record_id)
            logger.info(
                "baseline pointer moved %s -> %s", current or "<none>", record.record_id
            )

    def get(self, record_id: str) -> ProofRecord:
        path = self._record_path(record_id)
        try:
            text = path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"No record with id '{record_id}'") from None
        return loads_record(text)

    def exists(self, record_id: str) -> bool:
        try:
            return self._record_path(record_id).exists()
        except NotFoundError:
            return False

    def list(self, slot: SlotLike = Slot.HISTORY) -> List[str]:
        """Record ids in a slot, in insertion order. Side-effect free."""
        slot = Slot(slot)
        if slot is Slot.BASELINE:
            current = self._read_pointer()
            return [current] if current else []
        try:
            lines = self._index_path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        return [line.strip() for line in lines if line.strip()]

    def latest(self, slot: SlotLike = Slot.HISTORY) -> ProofRecord:
        """Most recently created record by timestamp (ties: later insertion wins)."""
        slot = Slot(slot)
        if slot is Slot.BASELINE:
            return self.baseline()
        ids = self.list(Slot.HISTORY)
        if not ids:
            raise EmptyStoreError("History holds no records")
        records = [(self.get(record_id), position) for position, record_id in enumerate(ids)]
        newest, _ = max(records, key=lambda pair: (pair[0].created_at, pair[1]))
        return newest

    def baseline(self) -> ProofRecord:
        current = self._read_pointer()
        if current is None:
            raise EmptyStoreError("No baseline record has been set")
        return self.get(current)

    def promote(self, record_id: str) -> ProofRecord:
        """Make an existing history record the baseline."""
        record = self.get(record_id)
        self.put(record, Slot.BASELINE)
        return record

    def prune(
        self,
        older_than: timedelta,
        now: Optional[datetime] = None,
        keep_baseline: bool = True,
    ) -> List[str]:
        """Delete history records created before `now - older_than`.

        The current baseline is never deleted while keep_baseline is set.
        Returns the deleted ids in insertion order.
        """
        cutoff = (now or utc_now()) - older_than
        with self._exclusive():
            baseline_id = self._read_pointer()
            kept: List[str] = []
            deleted: List[str] = []
            for record_id in self.list(Slot.HISTORY):
                record = self.get(record_id)
                if record.created_at < cutoff and not (keep_baseline and record_id == baseline_id):
                    deleted.append(record_id)
                else:
                    kept.append(record_id)
            if not deleted:
                return []

            text = "".join(f"{record_id}\n" for record_id in kept)
            tmp = self._write_temp(self.root, text)
            os.replace(tmp, self._index_path)
            if baseline_id in deleted:
                self._pointer_path.unlink()
                logger.warning("pruned the baseline record %s; baseline is now unset", baseline_id)
            for record_id in deleted:
                self._record_path(record_id).unlink()
                logger.info("pruned record %s", record_id)
            _fsync_dir(self.records_dir)
        return deleted
