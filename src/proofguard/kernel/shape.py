"""Expected proof shape and the cheap structural pre-checks run against it.

The shape is engine-defined: an engine that knows how many objects it emits
for a given `length` exposes `expected_shape(length)`. The checks here catch
gross tampering or truncation before the (expensive) oracle runs.
"""

from collections import Counter
from typing import Dict, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from proofguard.codes import ErrorCode
from proofguard.errors import StructuralMismatchError
from proofguard.kernel.record import ProofObject


class ProofShape(BaseModel):
    """Engine-specific structural expectations for one input length.

    - total_objects: exact object count, or None when the engine does not fix it
    - required_tags: tag -> exact count of objects carrying that tag
    - uniform_tags: tags whose objects must all carry identical data
    """
    total_objects: Optional[int] = Field(None, ge=0)
    required_tags: Dict[str, int] = Field(default_factory=dict)
    uniform_tags: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")


def check_shape(proof_objects: Sequence[ProofObject], shape: ProofShape) -> None:
    """Run structural pre-checks in a fixed order; the first failure wins.

    Order:
    1. total cardinality
    2. required substructures (tag counts)
    3. uniform substructures (identical data across a tag)

    Raises:
        StructuralMismatchError: with code CARDINALITY_MISMATCH,
            MISSING_SUBSTRUCTURE or INCONSISTENT_SUBSTRUCTURE
    """
    count = len(proof_objects)
    if shape.total_objects is not None and count != shape.total_objects:
        raise StructuralMismatchError(
            f"Proof object cardinality mismatch: expected {shape.total_objects}, found {count}",
            code=ErrorCode.CARDINALITY_MISMATCH,
        )

    tag_counts = Counter(obj.type for obj in proof_objects)
    for tag in sorted(shape.required_tags):
        expected = shape.required_tags[tag]
        found = tag_counts.get(tag, 0)
        if found != expected:
            if found == 0:
                message = f"Required proof substructure '{tag}' is absent (expected {expected})"
            else:
                message = f"Proof substructure '{tag}' count mismatch: expected {expected}, found {found}"
            raise StructuralMismatchError(message, code=ErrorCode.MISSING_SUBSTRUCTURE)

    for tag in shape.uniform_tags:
        reference: Optional[str] = None
        for index, obj in enumerate(proof_objects):
            if obj.type != tag:
                continue
            if reference is None:
                reference = obj.data
            elif obj.data != reference:
                raise StructuralMismatchError(
                    f"Inconsistent '{tag}' substructure at proof object {index}",
                    code=ErrorCode.INCONSISTENT_SUBSTRUCTURE,
                )
