"""
BN254 precompiles 0x06 (ecAdd), 0x07 (ecMul) and 0x08 (ecPairing) over a
`GroupBackend`.

Inputs are read as 32-byte big-endian words, right-padded with zeros when
short (ecAdd, ecMul). ecPairing requires a multiple of 192 bytes; each
element is G1 (64) ‖ G2 (128) with G2 in x1 ‖ x0 ‖ y1 ‖ y0 order. A rejected
input makes the call fail (success = 0, no output); it is never retried.

Gas (EIP-1108): ecAdd 150, ecMul 6000, ecPairing 45000 + 34000 * k.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Tuple

from ..errors import FatalGroupOpFailure
from ..types import G1Point, G2Point
from ..verifiers.field import G1_SIZE, G2_SIZE, WORD_SIZE, from_word, to_word
from ..verifiers.primitives import GroupBackend

log = logging.getLogger(__name__)

ECADD_ADDRESS = 0x06
ECMUL_ADDRESS = 0x07
ECPAIRING_ADDRESS = 0x08

ECADD_GAS = 150
ECMUL_GAS = 6000
PAIRING_BASE_GAS = 45000
PAIRING_PER_PAIR_GAS = 34000

_PAIR = G1_SIZE + G2_SIZE


def _pad(data: bytes, size: int) -> bytes:
    return data[:size].ljust(size, b"\x00")


def _g1(data: bytes) -> G1Point:
    return G1Point.from_bytes(data[:G1_SIZE])


class Precompiles:
    def __init__(self, backend: GroupBackend) -> None:
        self.backend = backend
        self._table: Dict[int, Tuple[Callable[[bytes], int], Callable[[bytes], bytes]]] = {
            ECADD_ADDRESS: (lambda _d: ECADD_GAS, self.ec_add),
            ECMUL_ADDRESS: (lambda _d: ECMUL_GAS, self.ec_mul),
            ECPAIRING_ADDRESS: (
                lambda d: PAIRING_BASE_GAS + PAIRING_PER_PAIR_GAS * (len(d) // _PAIR),
                self.ec_pairing,
            ),
        }

    def __contains__(self, address: int) -> bool:
        return address in self._table

    def gas_cost(self, address: int, data: bytes) -> int:
        return self._table[address][0](data)

    def call(self, address: int, data: bytes) -> Tuple[bool, bytes]:
        """Run a precompile; returns (success, output)."""
        try:
            return True, self._table[address][1](data)
        except FatalGroupOpFailure as e:
            log.debug("precompile %#04x failed: %s", address, e)
            return False, b""

    # --- implementations ---

    def ec_add(self, data: bytes) -> bytes:
        data = _pad(data, 2 * G1_SIZE)
        return self.backend.ec_add(_g1(data), _g1(data[G1_SIZE:])).to_bytes()

    def ec_mul(self, data: bytes) -> bytes:
        data = _pad(data, G1_SIZE + WORD_SIZE)
        s = from_word(data[G1_SIZE : G1_SIZE + WORD_SIZE])
        return self.backend.ec_mul(_g1(data), s).to_bytes()

    def ec_pairing(self, data: bytes) -> bytes:
        if len(data) % _PAIR:
            raise FatalGroupOpFailure("ec_pairing", "input length is not a multiple of 192")
        pairs = []
        for off in range(0, len(data), _PAIR):
            p = _g1(data[off : off + G1_SIZE])
            q = G2Point.from_bytes(data[off + G1_SIZE : off + _PAIR])
            pairs.append((p, q))
        return to_word(1 if self.backend.multi_pairing(pairs) else 0)


__all__ = [
    "Precompiles",
    "ECADD_ADDRESS",
    "ECMUL_ADDRESS",
    "ECPAIRING_ADDRESS",
    "ECADD_GAS",
    "ECMUL_GAS",
    "PAIRING_BASE_GAS",
    "PAIRING_PER_PAIR_GAS",
]
