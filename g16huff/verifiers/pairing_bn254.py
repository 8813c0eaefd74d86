"""
g16huff.verifiers.pairing_bn254
===============================

BN254 (alt_bn128) group backend on top of `py_ecc.optimized_bn128`.

This is the externally provided, accelerated capability the verifier
delegates to: G1 addition, G1 scalar multiplication and the multi-pairing
check. It mirrors the behaviour of the EVM precompiles 0x06/0x07/0x08:

- Every coordinate must be a canonical base-field element (< q).
- Points must be on the curve; (0, 0) is the point at infinity and is a
  valid input everywhere.
- G2 points must lie in the prime-order subgroup (configurable).
- Scalars are 256-bit words and are not reduced modulo r.

Any rejection raises `FatalGroupOpFailure`; callers must not retry.

Public API
----------
- PyEccBackend(check_g2_subgroup=True)
    .ec_add(P, Q) -> G1Point
    .ec_mul(P, s) -> G1Point
    .multi_pairing(pairs) -> bool
- g1_generator(), g2_generator()
- g1_from_py(P) / g1_to_py(P), g2_from_py(Q) / g2_to_py(Q)

Notes
-----
- Point ordering follows e(P, Q) with P in G1 and Q in G2. The underlying
  `py_ecc` pairing call expects (Q, P); this wrapper handles it.
- Pairs are evaluated strictly in the given order so that the work done,
  and any failure, is deterministic.

License: MIT
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from py_ecc.optimized_bn128 import FQ, FQ2, FQ12
from py_ecc.optimized_bn128 import G1 as _G1
from py_ecc.optimized_bn128 import G2 as _G2
from py_ecc.optimized_bn128 import add as _add
from py_ecc.optimized_bn128 import b as _B
from py_ecc.optimized_bn128 import b2 as _B2
from py_ecc.optimized_bn128 import curve_order as _R
from py_ecc.optimized_bn128 import is_on_curve as _is_on_curve
from py_ecc.optimized_bn128 import multiply as _mul
from py_ecc.optimized_bn128 import normalize as _normalize
from py_ecc.optimized_bn128 import pairing as _pairing

from ..errors import FatalGroupOpFailure
from ..types import G1Point, G2Point
from .field import is_base_element

log = logging.getLogger(__name__)

__all__ = [
    "PyEccBackend",
    "g1_generator",
    "g2_generator",
    "g1_to_py",
    "g1_from_py",
    "g2_to_py",
    "g2_from_py",
]

_WORD_LIMIT = 1 << 256


# -------------------------
# Conversions
# -------------------------


def g1_to_py(P: G1Point):
    """Affine G1Point -> py_ecc projective point (z == 0 is infinity)."""
    if P.is_identity:
        return (FQ(1), FQ(1), FQ(0))
    return (FQ(P.x), FQ(P.y), FQ(1))


def g1_from_py(P) -> G1Point:
    if P[2] == FQ.zero():
        return G1Point.identity()
    x, y = _normalize(P)
    return G1Point(int(x.n), int(y.n))


def g2_to_py(Q: G2Point):
    if Q.is_identity:
        return (FQ2.one(), FQ2.one(), FQ2.zero())
    return (FQ2([Q.x0, Q.x1]), FQ2([Q.y0, Q.y1]), FQ2.one())


def g2_from_py(Q) -> G2Point:
    if Q[2] == FQ2.zero():
        return G2Point.identity()
    x, y = _normalize(Q)
    return G2Point(
        int(x.coeffs[0]), int(x.coeffs[1]), int(y.coeffs[0]), int(y.coeffs[1])
    )


def g1_generator() -> G1Point:
    return g1_from_py(_G1)


def g2_generator() -> G2Point:
    return g2_from_py(_G2)


# -------------------------
# Backend
# -------------------------


class PyEccBackend:
    """Group backend backed by py_ecc's optimized BN254 implementation."""

    name = "py_ecc.optimized_bn128"

    def __init__(self, *, check_g2_subgroup: bool = True) -> None:
        self.check_g2_subgroup = check_g2_subgroup

    # --- validation ---

    def _g1(self, op: str, P: G1Point):
        if not (is_base_element(P.x) and is_base_element(P.y)):
            raise FatalGroupOpFailure(op, "G1 coordinate is not a canonical field element")
        pt = g1_to_py(P)
        if not P.is_identity and not _is_on_curve(pt, _B):
            raise FatalGroupOpFailure(op, "G1 point is not on curve", ctx={"x": hex(P.x)})
        return pt

    def _g2(self, op: str, Q: G2Point):
        if not all(is_base_element(c) for c in Q.coords()):
            raise FatalGroupOpFailure(op, "G2 coordinate is not a canonical field element")
        pt = g2_to_py(Q)
        if Q.is_identity:
            return pt
        if not _is_on_curve(pt, _B2):
            raise FatalGroupOpFailure(op, "G2 point is not on curve", ctx={"x0": hex(Q.x0)})
        if self.check_g2_subgroup and not _mul(pt, _R)[2] == FQ2.zero():
            raise FatalGroupOpFailure(op, "G2 point is not in the prime-order subgroup")
        return pt

    # --- operations ---

    def ec_add(self, P: G1Point, Q: G1Point) -> G1Point:
        p = self._g1("ec_add", P)
        q = self._g1("ec_add", Q)
        return g1_from_py(_add(p, q))

    def ec_mul(self, P: G1Point, s: int) -> G1Point:
        if not isinstance(s, int) or isinstance(s, bool) or not 0 <= s < _WORD_LIMIT:
            raise FatalGroupOpFailure("ec_mul", "scalar is not a 256-bit word")
        p = self._g1("ec_mul", P)
        return g1_from_py(_mul(p, s))

    def multi_pairing(self, pairs: Sequence[Tuple[G1Point, G2Point]]) -> bool:
        """Return True iff prod e(P_i, Q_i) == 1 in GT."""
        # Validate everything before the expensive part.
        points = [(self._g1("multi_pairing", P), self._g2("multi_pairing", Q)) for P, Q in pairs]
        acc = FQ12.one()
        for p, q in points:
            # py_ecc pairing expects (Q, P); infinity pairs to one.
            acc *= _pairing(q, p)
        ok = acc == FQ12.one()
        log.debug("multi_pairing over %d pairs -> %s", len(points), ok)
        return ok
