"""Interfaces consumed from the external Proving Engine and Verification Oracle.

Engines are duck-typed: anything with a matching `prove` (or `verify`) method
can be plugged in. Two optional capabilities refine verification:

- `expected_shape(length) -> ProofShape` enables structural pre-checks
- `hash_proof(input, proof_objects) -> str` enables proof hash recomputation
"""

from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from proofguard.kernel.record import ProofObject, ProveInput
from proofguard.kernel.shape import ProofShape

ProveOutput = Tuple[Sequence[ProofObject], str]


class ProvingFailure(Exception):
    """Raised by a Proving Engine that could not produce a proof."""

    def __init__(self, diagnostic: str):
        self.diagnostic = diagnostic
        super().__init__(diagnostic)


class OracleFailure(Exception):
    """Raised by a Verification Oracle that could not reach a judgment."""

    def __init__(self, diagnostic: str):
        self.diagnostic = diagnostic
        super().__init__(diagnostic)


@runtime_checkable
class ProvingEngine(Protocol):
    def prove(
        self, length: int, block_commitment: Tuple[int, ...], nonce: Tuple[int, ...]
    ) -> ProveOutput:
        ...


@runtime_checkable
class VerificationOracle(Protocol):
    def verify(
        self,
        length: int,
        block_commitment: Tuple[int, ...],
        nonce: Tuple[int, ...],
        proof_objects: Sequence[ProofObject],
    ) -> bool:
        ...


@runtime_checkable
class ShapeProvider(Protocol):
    def expected_shape(self, length: int) -> ProofShape:
        ...


@runtime_checkable
class ProofHasher(Protocol):
    def hash_proof(self, input: ProveInput, proof_objects: Sequence[ProofObject]) -> str:
        ...


def shape_provider_of(obj: object) -> Optional[ShapeProvider]:
    return obj if isinstance(obj, ShapeProvider) else None


def proof_hasher_of(obj: object) -> Optional[ProofHasher]:
    return obj if isinstance(obj, ProofHasher) else None
