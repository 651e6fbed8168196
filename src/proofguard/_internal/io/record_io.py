"""Persisted proof record format: loaders, writers and the on-disk model.

The document layout is an external interface read by other tooling, so field
names follow the capture format (`duration_secs`, `proof_hash`,
`source_branch`, `test_name`, `input.block_commitment`, ...) rather than the
in-memory model names.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from proofguard._internal.canonical_json import canonical_pretty_dumps
from proofguard.errors import ProofGuardError
from proofguard.codes import ErrorCode
from proofguard.kernel.record import ProofObject, ProofRecord, ProveInput

RECORD_FORMAT = "proofguard.record"
RECORD_FORMAT_VERSION = "1"


class InputDocument(BaseModel):
    length: int = Field(..., ge=0)
    block_commitment: List[int]
    nonce: List[int]

    model_config = ConfigDict(extra="forbid")


class ProofObjectDocument(BaseModel):
    type: str
    data: str

    model_config = ConfigDict(extra="forbid")


class RecordDocument(BaseModel):
    """On-disk shape of one ProofRecord."""
    format: Literal["proofguard.record"] = RECORD_FORMAT
    version: Literal["1"] = RECORD_FORMAT_VERSION
    record_id: str
    input: InputDocument
    duration_secs: float
    proof_hash: str
    timestamp: str
    test_name: str
    source_branch: str
    proof: List[ProofObjectDocument]

    model_config = ConfigDict(extra="forbid")


def record_to_document(record: ProofRecord) -> Dict[str, Any]:
    """Map a ProofRecord to its persisted JSON document (plain dict)."""
    return {
        "format": RECORD_FORMAT,
        "version": RECORD_FORMAT_VERSION,
        "record_id": record.record_id,
        "input": {
            "length": record.input.length,
            "block_commitment": list(record.input.block_commitment),
            "nonce": list(record.input.nonce),
        },
        "duration_secs": float(record.duration_secs),
        "proof_hash": record.proof_hash,
        "timestamp": record.timestamp,
        "test_name": record.test_name,
        "source_branch": record.source_label,
        "proof": [{"type": obj.type, "data": obj.data} for obj in record.proof_objects],
    }


def document_to_record(data: Dict[str, Any]) -> ProofRecord:
    """Validate a persisted document and build the in-memory ProofRecord.

    Raises:
        ProofGuardError: (INVALID_RECORD) if the document does not match the format
    """
    try:
        doc = RecordDocument.model_validate(data)
        return ProofRecord(
            record_id=doc.record_id,
            input=ProveInput(
                length=doc.input.length,
                block_commitment=doc.input.block_commitment,
                nonce=doc.input.nonce,
            ),
            proof_objects=tuple(ProofObject(type=o.type, data=o.data) for o in doc.proof),
            proof_hash=doc.proof_hash,
            duration_secs=doc.duration_secs,
            timestamp=doc.timestamp,
            source_label=doc.source_branch,
            test_name=doc.test_name,
        )
    except ValidationError as e:
        raise ProofGuardError(
            f"Malformed proof record document: {e.error_count()} validation error(s): {e}",
            code=ErrorCode.INVALID_RECORD,
        ) from e


def dumps_record(record: ProofRecord) -> str:
    """Serialize a record to its byte-stable persisted text."""
    return canonical_pretty_dumps(record_to_document(record))


def loads_record(text: Union[str, bytes]) -> ProofRecord:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProofGuardError(
            f"Proof record is not valid JSON: {e}", code=ErrorCode.INVALID_RECORD
        ) from e
    if not isinstance(data, dict):
        raise ProofGuardError(
            "Proof record must be a JSON object", code=ErrorCode.INVALID_RECORD
        )
    return document_to_record(data)


def load_record_from_path(path: Union[str, Path]) -> ProofRecord:
    """Load a proof record from a JSON file path."""
    return loads_record(Path(path).read_bytes())
