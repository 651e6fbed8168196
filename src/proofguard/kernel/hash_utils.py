"""Hash utilities with explicit canonicalization rules for stable hashing.

Key rules:
- Object keys sorted recursively
- Arrays preserve order
- Floats BANNED (hard validation error); durations never enter a proof digest
- Strings normalized to NFC
- Non-JSON types forbidden
"""

import hashlib
import json
import unicodedata
from pathlib import Path
from typing import Any, Iterable, Union

from proofguard.kernel.record import ProofObject, ProveInput


class CanonicalizationError(ValueError):
    """Raised when an object cannot be canonicalized."""
    pass


def _normalize_string(s: str) -> str:
    return unicodedata.normalize("NFC", s)


def _validate_json_type(obj: Any, path: str = "") -> None:
    """Validate that object contains only JSON-compatible, float-free types."""
    if obj is None or isinstance(obj, (bool, str)):
        return
    elif isinstance(obj, int):
        return
    elif isinstance(obj, float):
        raise CanonicalizationError(
            f"Floats are not allowed in hashed content (at {path or '<root>'})."
        )
    elif isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalizationError(
                    f"Dictionary keys must be strings at {path or '<root>'}, got {type(key).__name__}"
                )
            _validate_json_type(value, f"{path}.{key}" if path else key)
    elif isinstance(obj, (list, tuple)):
        for i, item in enumerate(obj):
            _validate_json_type(item, f"{path}[{i}]" if path else f"[{i}]")
    else:
        raise CanonicalizationError(
            f"Non-JSON type at {path or '<root>'}: {type(obj).__name__}. "
            f"Only None, bool, int, str, dict, and list are allowed."
        )


def _canonicalize_value(obj: Any) -> Any:
    if isinstance(obj, str):
        return _normalize_string(obj)
    elif isinstance(obj, dict):
        return {_normalize_string(k): _canonicalize_value(v) for k, v in sorted(obj.items())}
    elif isinstance(obj, (list, tuple)):
        return [_canonicalize_value(item) for item in obj]
    return obj


def canonicalize_json(obj: Any) -> str:
    """Canonicalize a JSON-serializable object to a stable string representation.

    Raises:
        CanonicalizationError: If object contains floats or non-JSON types
    """
    _validate_json_type(obj)
    return json.dumps(
        _canonicalize_value(obj),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )


def sha256_hex(content: Union[str, bytes]) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def hash_proof(input: ProveInput, proof_objects: Iterable[ProofObject]) -> str:
    """Digest over the proving inputs and the ordered proof objects.

    Any single-element mutation, reordering, insertion or removal in
    `proof_objects` yields a different digest.
    """
    payload = {
        "input": input.model_dump(mode="json"),
        "proof": [obj.model_dump(mode="json") for obj in proof_objects],
    }
    return sha256_hex(canonicalize_json(payload))


def compute_canonical_json_sha256(path: Union[str, Path]) -> str:
    """Compute SHA256 of canonicalized JSON file contents (formatting-insensitive)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return sha256_hex(canonical)
