"""
g16huff.tests helpers

Small utilities shared by the g16huff test modules.

Exports:
- TEST_ROOT
- env_flag(name, default=False) -> bool
- configure_test_logging() -> None
- g1(k), g2(k)                   → k·G1 / k·G2 as g16huff points
- make_key(n), make_proof(n, inputs), make_triple(n) -> Triple
- CountingBackend                → group backend that counts primitive calls

Honest (vk, proof, inputs) triples are built from known discrete logs so no
trusted setup or prover is needed:

    alpha = α·G1   beta = β·G2   gamma = γ·G2   delta = δ·G2   IC[i] = k_i·G1
    A = a·G1       B = b·G2      C = c·G1

with x = k_0 + Σ pub[i]·k_{i+1} and c = (a·b − α·β − x·γ) / δ (mod r), so that
e(-A, B)·e(alpha, beta)·e(vk_x, gamma)·e(C, delta) == 1.

Environment toggles:
- G16HUFF_TEST_LOG=1      → enable INFO logging for g16huff.*
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Sequence, Tuple

from py_ecc.optimized_bn128 import G1 as PY_G1
from py_ecc.optimized_bn128 import G2 as PY_G2
from py_ecc.optimized_bn128 import multiply

from g16huff.types import G1Point, G2Point, Proof, VerificationKey
from g16huff.verifiers.field import R
from g16huff.verifiers.pairing_bn254 import PyEccBackend, g1_from_py, g2_from_py

TEST_ROOT: Path = Path(__file__).resolve().parent

# Secret exponents; any non-zero values work.
ALPHA, BETA, GAMMA, DELTA = 3, 5, 13, 17
A_EXP, B_EXP = 7, 11

PUBLIC_INPUTS = {
    0: [],
    1: [33],
    2: [33, 5],
    3: [1, 2, 3],
}


def env_flag(name: str, default: bool = False) -> bool:
    """
    Read an environment flag in a truthy/falsey way: "1", "true", "yes" → True.
    """
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def configure_test_logging(level: int | None = None) -> None:
    """
    Configure basic logging for g16huff.* loggers when G16HUFF_TEST_LOG is set.
    """
    if level is None:
        level = logging.INFO
    if env_flag("G16HUFF_TEST_LOG", False):
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logging.getLogger("g16huff").setLevel(level)


# -------------------------
# Points and triples
# -------------------------


def g1(k: int) -> G1Point:
    return g1_from_py(multiply(PY_G1, k % R))


def g2(k: int) -> G2Point:
    return g2_from_py(multiply(PY_G2, k % R))


def ic_exponents(n: int) -> List[int]:
    return [19 + 2 * i for i in range(n + 1)]


@dataclass(frozen=True)
class Triple:
    vk: VerificationKey
    proof: Proof
    inputs: Tuple[int, ...]

    @property
    def n(self) -> int:
        return self.vk.n_public


@lru_cache(maxsize=None)
def make_key(n: int) -> VerificationKey:
    return VerificationKey(
        alpha=g1(ALPHA),
        beta=g2(BETA),
        gamma=g2(GAMMA),
        delta=g2(DELTA),
        ic=tuple(g1(k) for k in ic_exponents(n)),
    )


def make_proof(n: int, inputs: Sequence[int]) -> Proof:
    ks = ic_exponents(n)
    x = (ks[0] + sum(p * k for p, k in zip(inputs, ks[1:]))) % R
    c = (A_EXP * B_EXP - ALPHA * BETA - x * GAMMA) * pow(DELTA, -1, R) % R
    return Proof(a=g1(A_EXP), b=g2(B_EXP), c=g1(c))


@lru_cache(maxsize=None)
def make_triple(n: int) -> Triple:
    inputs = tuple(PUBLIC_INPUTS.get(n, list(range(1, n + 1))))
    return Triple(vk=make_key(n), proof=make_proof(n, inputs), inputs=inputs)


class CountingBackend:
    """Group backend wrapper recording every primitive call."""

    def __init__(self, inner=None) -> None:
        self.inner = inner or PyEccBackend()
        self.calls: Counter = Counter()

    @property
    def total(self) -> int:
        return sum(self.calls.values())

    def ec_add(self, P, Q):
        self.calls["ec_add"] += 1
        return self.inner.ec_add(P, Q)

    def ec_mul(self, P, s):
        self.calls["ec_mul"] += 1
        return self.inner.ec_mul(P, s)

    def multi_pairing(self, pairs):
        self.calls["multi_pairing"] += 1
        return self.inner.multi_pairing(pairs)


configure_test_logging()

__all__ = [
    "TEST_ROOT",
    "env_flag",
    "configure_test_logging",
    "g1",
    "g2",
    "ic_exponents",
    "Triple",
    "make_key",
    "make_proof",
    "make_triple",
    "CountingBackend",
]
