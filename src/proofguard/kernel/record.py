"""Proof record models: the immutable unit of evidence and its derived reports."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from proofguard.codes import Verdict

DIGEST_WORDS = 5
WORD_MAX = 2**64 - 1

_HEX_RE = re.compile(r"^(?:[0-9a-f]{2})*$")
_SLUG_RE = re.compile(r"[^A-Za-z0-9._]+")


def _validate_digest(v: Any, name: str) -> Tuple[int, ...]:
    words = tuple(v)
    if len(words) != DIGEST_WORDS:
        raise ValueError(f"{name} must have exactly {DIGEST_WORDS} words, got {len(words)}")
    for w in words:
        if isinstance(w, bool) or not isinstance(w, int):
            raise ValueError(f"{name} words must be integers, got {type(w).__name__}")
        if w < 0 or w > WORD_MAX:
            raise ValueError(f"{name} word {w} out of range for an unsigned 64-bit word")
    return words


class ProveInput(BaseModel):
    """Fixed inputs that fully determine the Proving Engine output."""
    length: int = Field(..., ge=0)
    block_commitment: Tuple[int, ...]
    nonce: Tuple[int, ...]

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("block_commitment")
    @classmethod
    def validate_block_commitment(cls, v: Any) -> Tuple[int, ...]:
        return _validate_digest(v, "block_commitment")

    @field_validator("nonce")
    @classmethod
    def validate_nonce(cls, v: Any) -> Tuple[int, ...]:
        return _validate_digest(v, "nonce")


class ProofObject(BaseModel):
    """One opaque, typed proof element.

    The pipeline never interprets `data`; it is the lowercase hex encoding of
    the engine's blob. `type` is the engine's tag (e.g. "m-root", "heights").
    """
    type: str = Field(..., min_length=1)
    data: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        if not _HEX_RE.match(v):
            raise ValueError("data must be a lowercase, even-length hex string")
        return v

    @classmethod
    def from_bytes(cls, type_: str, payload: bytes) -> "ProofObject":
        return cls(type=type_, data=payload.hex())

    @property
    def payload(self) -> bytes:
        return bytes.fromhex(self.data)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with fixed microsecond precision (byte-stable)."""
    if ts.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def derive_record_id(source_label: str, ts: datetime) -> str:
    """Derive the record identity from provenance label and creation time.

    Example: ("feature/fast-tip5", 2026-10-19 12:00:00 UTC)
        -> "feature-fast-tip5-20261019T120000000000Z"
    """
    slug = _SLUG_RE.sub("-", source_label).strip("-._") or "unlabeled"
    stamp = ts.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{slug}-{stamp}"


class ProofRecord(BaseModel):
    """Immutable evidence bundle from one proving run."""
    record_id: str = Field(..., min_length=1)
    input: ProveInput
    proof_objects: Tuple[ProofObject, ...]
    proof_hash: str = Field(..., min_length=1)
    duration_secs: float = Field(..., ge=0)
    timestamp: str
    source_label: str
    test_name: str = ""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """Validate timestamp is ISO 8601 format with a UTC offset."""
        try:
            parsed = parse_timestamp(v)
        except ValueError:
            raise ValueError(f"timestamp must be ISO 8601 format, got '{v}'")
        if parsed.tzinfo is None:
            raise ValueError(f"timestamp must carry a UTC offset, got '{v}'")
        return v

    @property
    def created_at(self) -> datetime:
        return parse_timestamp(self.timestamp)


class ErrorDetail(BaseModel):
    """Structured explanation attached to a negative verification result."""
    code: str
    message: str

    model_config = ConfigDict(frozen=True)


class VerificationResult(BaseModel):
    """Outcome of replaying a record through the pre-checks and the oracle."""
    record_id: str
    is_valid: bool
    duration_secs: float = Field(..., ge=0)
    error_detail: Optional[ErrorDetail] = None
    proof_objects_count: int
    original_proof_hash: str
    verification_method: str  # "structural_precheck" | "oracle"
    timestamp: str

    model_config = ConfigDict(frozen=True)


class ComparisonReport(BaseModel):
    """Baseline vs candidate along the correctness and performance axes."""
    baseline_record_id: str
    candidate_record_id: str
    hashes_equal: bool
    baseline_proof_hash: str
    candidate_proof_hash: str
    baseline_duration_secs: float
    candidate_duration_secs: float
    duration_delta_secs: float  # candidate - baseline
    duration_delta_percent: Optional[float]  # None when baseline duration is 0 and delta is not
    threshold_percent: float
    verdict: Verdict

    model_config = ConfigDict(frozen=True)

    def summary(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "hashes_equal": self.hashes_equal,
            "duration_delta_percent": self.duration_delta_percent,
        }
