"""
BN254 (alt_bn128) field constants and 32-byte word helpers.

Two distinct primes are in play:

- Q: base-field modulus. Point coordinates live in [0, Q).
- R: scalar-field modulus (the order of G1/G2/GT). Public inputs and
     scalars live in [0, R).

Every field element crosses a byte boundary as a 32-byte big-endian word;
this is the width contract shared by the key packer, the calldata encoder
and the generated program.

References:
- EVM precompiles 0x06/0x07/0x08 (EIP-196, EIP-197) and snarkjs bn128.

License: MIT
"""

from __future__ import annotations

from typing import Iterable, List

Q: int = 21888242871839275222246405745257275088696311157297823662689037894645226208583
R: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617

WORD_SIZE = 32
G1_SIZE = 2 * WORD_SIZE
G2_SIZE = 4 * WORD_SIZE


def is_base_element(x: int) -> bool:
    """True if x is a canonical base-field element."""
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x < Q


def is_scalar_element(x: int) -> bool:
    """True if x is a canonical scalar-field element."""
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x < R


def to_word(x: int) -> bytes:
    """Encode a non-negative int (< 2**256) as a 32-byte big-endian word."""
    if x < 0:
        raise ValueError("to_word: negative value")
    return int(x).to_bytes(WORD_SIZE, "big")


def from_word(b: bytes) -> int:
    if len(b) != WORD_SIZE:
        raise ValueError(f"from_word: expected {WORD_SIZE} bytes, got {len(b)}")
    return int.from_bytes(b, "big")


def words(data: bytes) -> List[int]:
    """Split `data` (a multiple of 32 bytes) into big-endian ints."""
    if len(data) % WORD_SIZE:
        raise ValueError("words: length is not a multiple of 32")
    return [from_word(data[i : i + WORD_SIZE]) for i in range(0, len(data), WORD_SIZE)]


def join_words(values: Iterable[int]) -> bytes:
    return b"".join(to_word(v) for v in values)


__all__ = [
    "Q",
    "R",
    "WORD_SIZE",
    "G1_SIZE",
    "G2_SIZE",
    "is_base_element",
    "is_scalar_element",
    "to_word",
    "from_word",
    "words",
    "join_words",
]
