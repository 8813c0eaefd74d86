"""
g16huff.types
=============

Core data model shared by the verifier and the generator.

- `G1Point`, `G2Point`: affine BN254 points with integer coordinates.
  (0, 0) / (0, 0, 0, 0) is the point at infinity.
- `VerificationKey`: alpha (G1), beta/gamma/delta (G2) and the IC table
  (`len(ic) == n_public + 1`, `ic[0]` is the constant term).
- `Proof`: A (G1), B (G2), C (G1).
- `ProgramManifest`: msgspec record describing one generated program
  (region map, symbol table, packed-key digest, ...).

Byte encodings
--------------
G1 serializes to 64 bytes: x ‖ y.
G2 serializes to 128 bytes in the EVM precompile order, imaginary limb
first: x1 ‖ x0 ‖ y1 ‖ y0, where x = x0 + x1·i and y = y0 + y1·i.
Every limb is a 32-byte big-endian word.

Keys and proofs are immutable once built; they are computed once per
circuit (keys) or supplied per call (proofs, public inputs).
"""

from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha3_256
from typing import Dict, List, Sequence, Tuple

import msgspec

from .errors import MalformedVerificationKey
from .verifiers.field import G1_SIZE, G2_SIZE, join_words, words

__all__ = [
    "G1Point",
    "G2Point",
    "VerificationKey",
    "Proof",
    "PublicInputs",
    "ProgramManifest",
    "compute_vk_hash",
]

PublicInputs = Sequence[int]


@dataclass(frozen=True)
class G1Point:
    x: int
    y: int

    @classmethod
    def identity(cls) -> "G1Point":
        return cls(0, 0)

    @property
    def is_identity(self) -> bool:
        return self.x == 0 and self.y == 0

    def to_bytes(self) -> bytes:
        return join_words((self.x, self.y))

    @classmethod
    def from_bytes(cls, data: bytes) -> "G1Point":
        if len(data) != G1_SIZE:
            raise ValueError(f"G1Point.from_bytes: expected {G1_SIZE} bytes, got {len(data)}")
        x, y = words(data)
        return cls(x, y)

    def coords(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class G2Point:
    x0: int
    x1: int
    y0: int
    y1: int

    @classmethod
    def identity(cls) -> "G2Point":
        return cls(0, 0, 0, 0)

    @property
    def is_identity(self) -> bool:
        return not (self.x0 or self.x1 or self.y0 or self.y1)

    def to_bytes(self) -> bytes:
        return join_words((self.x1, self.x0, self.y1, self.y0))

    @classmethod
    def from_bytes(cls, data: bytes) -> "G2Point":
        if len(data) != G2_SIZE:
            raise ValueError(f"G2Point.from_bytes: expected {G2_SIZE} bytes, got {len(data)}")
        x1, x0, y1, y0 = words(data)
        return cls(x0, x1, y0, y1)

    def coords(self) -> Tuple[int, int, int, int]:
        return (self.x0, self.x1, self.y0, self.y1)


@dataclass(frozen=True)
class VerificationKey:
    alpha: G1Point
    beta: G2Point
    gamma: G2Point
    delta: G2Point
    ic: Tuple[G1Point, ...]  # [IC0, IC1, ..., ICn]

    def __post_init__(self) -> None:
        if not isinstance(self.ic, tuple):
            object.__setattr__(self, "ic", tuple(self.ic))
        if len(self.ic) == 0:
            raise MalformedVerificationKey("IC must contain at least the constant term", path="ic")

    @property
    def n_public(self) -> int:
        return len(self.ic) - 1


@dataclass(frozen=True)
class Proof:
    a: G1Point
    b: G2Point
    c: G1Point


# -----------------------------------------------------------------------------
# Generation manifest
# -----------------------------------------------------------------------------


class ProgramManifest(msgspec.Struct, frozen=True, kw_only=True):
    """Describes one generated program; written next to the program text."""

    program: str
    generator: str
    n_public: int
    unrolled: bool
    regions: Dict[str, List[int]]  # name -> [offset, size]
    symbols: Dict[str, int]
    total_memory: int
    packed_key_len: int
    packed_key_sha3: str
    vk_hash: str


def compute_vk_hash(vk: VerificationKey) -> str:
    """sha3-256 over the canonical packed encoding, as 'sha3-256:<hex>'."""
    from .codegen.packer import pack

    return "sha3-256:" + sha3_256(pack(vk).data).hexdigest()
