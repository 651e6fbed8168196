"""Tests for the persisted proof record format."""

import json

import pytest

from proofguard._internal.io.record_io import (
    RECORD_FORMAT,
    RECORD_FORMAT_VERSION,
    RecordDocument,
    document_to_record,
    dumps_record,
    load_record_from_path,
    loads_record,
    record_to_document,
)
from proofguard.codes import ErrorCode
from proofguard.errors import ProofGuardError
from proofguard.kernel.record import ProofObject, ProofRecord, ProveInput

EXPECTED_TEXT = """{
  "duration_secs": 120.0,
  "format": "proofguard.record",
  "input": {
    "block_commitment": [
      1,
      2,
      3,
      4,
      5
    ],
    "length": 2,
    "nonce": [
      0,
      0,
      0,
      0,
      0
    ]
  },
  "proof": [
    {
      "data": "00ff",
      "type": "m-root"
    }
  ],
  "proof_hash": "abc123",
  "record_id": "master-20261019T120000000000Z",
  "source_branch": "master",
  "test_name": "baseline_small",
  "timestamp": "2026-10-19T12:00:00.000000+00:00",
  "version": "1"
}
"""


def _record() -> ProofRecord:
    return ProofRecord(
        record_id="master-20261019T120000000000Z",
        input=ProveInput(length=2, block_commitment=(1, 2, 3, 4, 5), nonce=(0, 0, 0, 0, 0)),
        proof_objects=(ProofObject(type="m-root", data="00ff"),),
        proof_hash="abc123",
        duration_secs=120.0,
        timestamp="2026-10-19T12:00:00.000000+00:00",
        source_label="master",
        test_name="baseline_small",
    )


def test_dumps_record_is_byte_stable():
    assert dumps_record(_record()) == EXPECTED_TEXT
    assert dumps_record(_record()) == dumps_record(_record())


def test_document_uses_capture_field_names():
    doc = record_to_document(_record())
    assert doc["format"] == RECORD_FORMAT
    assert doc["version"] == RECORD_FORMAT_VERSION
    assert doc["source_branch"] == "master"
    assert doc["input"]["block_commitment"] == [1, 2, 3, 4, 5]
    assert "source_label" not in doc
    assert "proof_objects" not in doc


def test_loads_record_restores_equal_record():
    record = _record()
    assert loads_record(dumps_record(record)) == record
    assert loads_record(dumps_record(record).encode("utf-8")) == record


def test_integral_duration_is_written_as_float():
    record = _record().model_copy(update={"duration_secs": 3})
    assert '"duration_secs": 3.0' in dumps_record(record)


def test_load_record_from_path(tmp_path):
    path = tmp_path / "master_baseline_small.json"
    path.write_text(EXPECTED_TEXT, encoding="utf-8")
    assert load_record_from_path(path) == _record()


def test_loads_record_rejects_invalid_json():
    with pytest.raises(ProofGuardError) as excinfo:
        loads_record("{not json")
    assert excinfo.value.code is ErrorCode.INVALID_RECORD


def test_loads_record_rejects_non_object():
    with pytest.raises(ProofGuardError) as excinfo:
        loads_record("[]")
    assert excinfo.value.code is ErrorCode.INVALID_RECORD


def test_document_rejects_unknown_fields():
    doc = json.loads(EXPECTED_TEXT)
    doc["extra"] = True
    with pytest.raises(ProofGuardError) as excinfo:
        document_to_record(doc)
    assert excinfo.value.code is ErrorCode.INVALID_RECORD


def test_document_rejects_wrong_format_marker():
    doc = json.loads(EXPECTED_TEXT)
    doc["format"] = "something.else"
    with pytest.raises(ProofGuardError, match="Malformed proof record"):
        document_to_record(doc)


def test_document_rejects_bad_digest_length():
    doc = json.loads(EXPECTED_TEXT)
    doc["input"]["nonce"] = [0, 0, 0]
    with pytest.raises(ProofGuardError) as excinfo:
        document_to_record(doc)
    assert excinfo.value.code is ErrorCode.INVALID_RECORD


def test_record_document_schema_lists_required_fields():
    schema = RecordDocument.model_json_schema()
    assert set(schema["required"]) == {
        "record_id",
        "input",
        "duration_secs",
        "proof_hash",
        "timestamp",
        "test_name",
        "source_branch",
        "proof",
    }
