"""Deterministic reference engine and oracle.

A pure-Python stand-in with the same contract as the real prover: fixed
inputs always yield the same proof objects and proof hash. It lets the
pipeline, CLI and tests run end to end without the STARK toolchain. It proves
nothing cryptographically.

For input length L the proof is laid out as:

    puzzle x1, m-root x4, heights x L, codeword x L, poly x1

`heights` objects all carry the same data, mirroring the real prover's
repeated table-height vectors.
"""

import hashlib
import struct
from typing import List, Optional, Sequence, Tuple

from proofguard.kernel.hash_utils import hash_proof
from proofguard.kernel.record import ProofObject, ProveInput
from proofguard.kernel.shape import ProofShape

MERKLE_ROOTS = 4


def _words_bytes(words: Sequence[int]) -> bytes:
    return b"".join(struct.pack(">Q", w) for w in words)


class ReferenceEngine:
    """Proving Engine with a fixed, length-driven proof layout."""

    name = "reference"

    def _seed(self, input: ProveInput) -> bytes:
        return hashlib.sha256(
            struct.pack(">Q", input.length)
            + _words_bytes(input.block_commitment)
            + _words_bytes(input.nonce)
        ).digest()

    def _blob(self, seed: bytes, tag: str, index: int) -> bytes:
        return hashlib.sha256(seed + tag.encode("ascii") + struct.pack(">Q", index)).digest()

    def build_objects(self, input: ProveInput) -> List[ProofObject]:
        seed = self._seed(input)
        objects = [ProofObject.from_bytes("puzzle", self._blob(seed, "puzzle", 0))]
        objects += [
            ProofObject.from_bytes("m-root", self._blob(seed, "m-root", i))
            for i in range(MERKLE_ROOTS)
        ]
        heights = b"".join(struct.pack(">Q", 2 ** (i + 1)) for i in range(4)) + struct.pack(
            ">Q", input.length
        )
        objects += [ProofObject.from_bytes("heights", heights) for _ in range(input.length)]
        objects += [
            ProofObject.from_bytes("codeword", self._blob(seed, "codeword", i))
            for i in range(input.length)
        ]
        objects.append(ProofObject.from_bytes("poly", self._blob(seed, "poly", 0)))
        return objects

    def prove(
        self, length: int, block_commitment: Tuple[int, ...], nonce: Tuple[int, ...]
    ) -> Tuple[List[ProofObject], str]:
        input = ProveInput(length=length, block_commitment=block_commitment, nonce=nonce)
        objects = self.build_objects(input)
        return objects, hash_proof(input, objects)

    def expected_shape(self, length: int) -> ProofShape:
        return ProofShape(
            total_objects=2 * length + MERKLE_ROOTS + 2,
            required_tags={"puzzle": 1, "m-root": MERKLE_ROOTS, "heights": length, "poly": 1},
            uniform_tags=("heights",),
        )

    def hash_proof(self, input: ProveInput, proof_objects: Sequence[ProofObject]) -> str:
        return hash_proof(input, proof_objects)


class ReferenceOracle:
    """Accepts a proof iff it equals what the reference engine derives for the inputs."""

    name = "reference"

    def __init__(self, engine: Optional[ReferenceEngine] = None):
        self.engine = engine or ReferenceEngine()

    def verify(
        self,
        length: int,
        block_commitment: Tuple[int, ...],
        nonce: Tuple[int, ...],
        proof_objects: Sequence[ProofObject],
    ) -> bool:
        input = ProveInput(length=length, block_commitment=block_commitment, nonce=nonce)
        return list(proof_objects) == self.engine.build_objects(input)

    def expected_shape(self, length: int) -> ProofShape:
        return self.engine.expected_shape(length)

    def hash_proof(self, input: ProveInput, proof_objects: Sequence[ProofObject]) -> str:
        return self.engine.hash_proof(input, proof_objects)
