"""Centralized canonical JSON serialization.

Used everywhere bytes must be stable: persisted proof records, machine-readable
reports printed by the CLI, and schema snapshots.
"""

import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """
    Compact canonical JSON for machine-readable reports.

    Rules:
    - UTF-8 (ensure_ascii=False)
    - Sorted keys
    - Stable separators (",", ":")
    - NaN/Infinity rejected
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_pretty_dumps(obj: Any) -> str:
    """
    Line-oriented canonical JSON for documents humans diff.

    Same key order and value rules as canonical_dumps, 2-space indent and a
    trailing newline, so two serializations of the same record are identical
    byte for byte.
    """
    return json.dumps(
        obj,
        sort_keys=True,
        indent=2,
        separators=(",", ": "),
        ensure_ascii=False,
        allow_nan=False,
    ) + "\n"
