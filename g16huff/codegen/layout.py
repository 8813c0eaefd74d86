"""
g16huff.codegen.layout — closed-form memory layout of a generated verifier.

The layout is a pure function of the public-input count `n`. It is computed
once per verification key at generation time; the generated program only
ever sees the resulting integer literals.

Regions (in order, each starting where the previous one ends):

    scratch       160             loop counter, ecMul input (x, y, s), product
    accumulator    64             running G1 sum; follows the product so that
                                  product ‖ acc is the ecAdd input
    ic_table      64 * (n + 1)    IC points copied from the packed key
    pairing       768             four (G1, G2) pairs for the 0x08 precompile
    staging       320 + 32 * n    ABI arguments after the selector:
                                  A, B, C, array offset word, length word, inputs

Total footprint: 1376 + 96 * n bytes.

Scratch words:
    +0x00  loop counter (runtime-loop variant only; also holds the result word)
    +0x20  ecMul input x
    +0x40  ecMul input y
    +0x60  ecMul scalar, then product x
    +0x80  product y

`MemoryLayout.symbols()` is the typed mapping from symbolic offset name to
integer literal consumed by the specializer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..verifiers.field import G1_SIZE, G2_SIZE, WORD_SIZE

SELECTOR_SIZE = 4
PAIR_SIZE = G1_SIZE + G2_SIZE
N_PAIRS = 4

SCRATCH_SIZE = 5 * WORD_SIZE
ACC_SIZE = G1_SIZE
PAIRING_SIZE = N_PAIRS * PAIR_SIZE
# A, B, C, array offset word; the length word is added separately.
STAGING_FIXED = G1_SIZE + G2_SIZE + G1_SIZE + WORD_SIZE
# Value of the ABI offset word for the dynamic input array: the length word
# follows the nine head words.
ABI_ARRAY_OFFSET = STAGING_FIXED

# Packed-key section offsets (alpha, beta, gamma, delta, IC[0..n]).
KEY_ALPHA = 0
KEY_BETA = KEY_ALPHA + G1_SIZE
KEY_GAMMA = KEY_BETA + G2_SIZE
KEY_DELTA = KEY_GAMMA + G2_SIZE
KEY_IC = KEY_DELTA + G2_SIZE

REGION_NAMES = ("scratch", "accumulator", "ic_table", "pairing", "staging")


@dataclass(frozen=True)
class Region:
    name: str
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True)
class MemoryLayout:
    n: int
    regions: Tuple[Region, ...]

    def region(self, name: str) -> Region:
        for r in self.regions:
            if r.name == name:
                return r
        raise KeyError(f"unknown region {name!r}")

    @property
    def total_size(self) -> int:
        return self.regions[-1].end

    @property
    def calldata_size(self) -> int:
        """Exact calldata size of a `verify` call, selector included."""
        return SELECTOR_SIZE + self.region("staging").size

    def as_dict(self) -> Dict[str, List[int]]:
        return {r.name: [r.offset, r.size] for r in self.regions}

    def symbols(self) -> Dict[str, int]:
        """Symbolic offset name -> integer literal."""
        scratch = self.region("scratch").offset
        acc = self.region("accumulator")
        ic = self.region("ic_table")
        pairing = self.region("pairing")
        staging = self.region("staging")

        sym: Dict[str, int] = {
            "N_INPUTS": self.n,
            "SCRATCH": scratch,
            "SCRATCH_SIZE": SCRATCH_SIZE,
            "ACC": acc.offset,
            "ACC_SIZE": acc.size,
            "IC_TABLE": ic.offset,
            "IC_TABLE_SIZE": ic.size,
            "PAIRING": pairing.offset,
            "PAIRING_SIZE": pairing.size,
            "STAGING": staging.offset,
            "STAGING_SIZE": staging.size,
            "MEMORY_SIZE": self.total_size,
            # scratch words
            "LOOP_COUNTER": scratch,
            "RESULT": scratch,
            "MUL_IN": scratch + 0x20,
            "MUL_SCALAR": scratch + 0x60,
            "MUL_OUT": scratch + 0x60,
            "ADD_IN": scratch + 0x60,
            # staging (ABI head after the selector)
            "STAGING_A": staging.offset,
            "STAGING_B": staging.offset + G1_SIZE,
            "STAGING_C": staging.offset + G1_SIZE + G2_SIZE,
            "STAGING_OFFSET_WORD": staging.offset + STAGING_FIXED - WORD_SIZE,
            "STAGING_LENGTH": staging.offset + STAGING_FIXED,
            "STAGING_INPUTS": staging.offset + STAGING_FIXED + WORD_SIZE,
            "ABI_ARRAY_OFFSET": ABI_ARRAY_OFFSET,
            "CALLDATA_SIZE": self.calldata_size,
            "CALLDATA_ARGS_SIZE": staging.size,
            # packed key
            "KEY_ALPHA": KEY_ALPHA,
            "KEY_BETA": KEY_BETA,
            "KEY_GAMMA": KEY_GAMMA,
            "KEY_DELTA": KEY_DELTA,
            "KEY_IC": KEY_IC,
            "KEY_IC_SIZE": ic.size,
            "KEY_SIZE": KEY_IC + ic.size,
            "PAIR_SIZE": PAIR_SIZE,
            "G2_SIZE": G2_SIZE,
        }
        for i in range(N_PAIRS):
            sym[f"PAIRING_PAIR_{i}_G1"] = pairing.offset + i * PAIR_SIZE
            sym[f"PAIRING_PAIR_{i}_G2"] = pairing.offset + i * PAIR_SIZE + G1_SIZE
        return sym


def layout(n: int) -> MemoryLayout:
    """Region map for a key with `n` public inputs."""
    if not isinstance(n, int) or isinstance(n, bool) or n < 0:
        raise ValueError(f"public-input count must be a non-negative int, got {n!r}")
    sizes = (
        ("scratch", SCRATCH_SIZE),
        ("accumulator", ACC_SIZE),
        ("ic_table", (n + 1) * G1_SIZE),
        ("pairing", PAIRING_SIZE),
        ("staging", STAGING_FIXED + WORD_SIZE + n * WORD_SIZE),
    )
    regions = []
    offset = 0
    for name, size in sizes:
        regions.append(Region(name, offset, size))
        offset += size
    return MemoryLayout(n=n, regions=tuple(regions))


__all__ = [
    "Region",
    "MemoryLayout",
    "layout",
    "REGION_NAMES",
    "PAIR_SIZE",
    "KEY_ALPHA",
    "KEY_BETA",
    "KEY_GAMMA",
    "KEY_DELTA",
    "KEY_IC",
]
