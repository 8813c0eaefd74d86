"""
Group arithmetic primitives used by the Groth16 verification algorithm.

`negate` is computed locally. `add`, `scalar_mul` and `multi_pairing`
delegate to a `GroupBackend` (the accelerated capability: py_ecc in
process, or the 0x06/0x07/0x08 precompiles inside the metered machine).

`scalar_mul` performs no range reduction on the scalar; the verifier
checks `s < r` before calling it.

License: MIT
"""

from __future__ import annotations

from typing import Protocol, Sequence, Tuple, runtime_checkable

from ..types import G1Point, G2Point
from .field import Q


@runtime_checkable
class GroupBackend(Protocol):
    """Externally provided group/pairing capability. Failures raise FatalGroupOpFailure."""

    def ec_add(self, P: G1Point, Q: G1Point) -> G1Point: ...

    def ec_mul(self, P: G1Point, s: int) -> G1Point: ...

    def multi_pairing(self, pairs: Sequence[Tuple[G1Point, G2Point]]) -> bool: ...


def negate(P: G1Point) -> G1Point:
    """-P; the identity is returned unchanged."""
    if P.is_identity:
        return P
    return G1Point(P.x, Q - (P.y % Q))


def add(P: G1Point, Q_: G1Point, backend: GroupBackend) -> G1Point:
    return backend.ec_add(P, Q_)


def scalar_mul(P: G1Point, s: int, backend: GroupBackend) -> G1Point:
    return backend.ec_mul(P, s)


def multi_pairing(pairs: Sequence[Tuple[G1Point, G2Point]], backend: GroupBackend) -> bool:
    return backend.multi_pairing(pairs)


__all__ = ["GroupBackend", "negate", "add", "scalar_mul", "multi_pairing"]
