"""
Canonical binary encoding of a verification key.

    alpha (G1, 64) ‖ beta (G2, 128) ‖ gamma (G2, 128) ‖ delta (G2, 128) ‖
    IC[0] (G1, 64) ‖ ... ‖ IC[n] (G1, 64)

Length: 448 + 64 * (n + 1). Every limb is a 32-byte big-endian word and G2
points use the precompile order (x1 ‖ x0 ‖ y1 ‖ y0), so sections can be
copied straight into the pairing buffer. The section offsets below are the
ones the layout's table-copy symbols refer to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from hashlib import sha3_256
from typing import Dict

from ..errors import MalformedVerificationKey
from ..types import G1Point, G2Point, VerificationKey
from ..verifiers.field import G1_SIZE, G2_SIZE, is_base_element
from .layout import KEY_ALPHA, KEY_BETA, KEY_DELTA, KEY_GAMMA, KEY_IC

log = logging.getLogger(__name__)

SECTION_OFFSETS: Dict[str, int] = {
    "alpha": KEY_ALPHA,
    "beta": KEY_BETA,
    "gamma": KEY_GAMMA,
    "delta": KEY_DELTA,
    "ic": KEY_IC,
}


def packed_size(n: int) -> int:
    return KEY_IC + (n + 1) * G1_SIZE


@dataclass(frozen=True)
class PackedKey:
    data: bytes
    n_public: int

    @property
    def offsets(self) -> Dict[str, int]:
        return dict(SECTION_OFFSETS)

    def hex(self) -> str:
        return self.data.hex()

    def digest(self) -> str:
        """SHA3-256 of the packed bytes (hex)."""
        return sha3_256(self.data).hexdigest()

    def __len__(self) -> int:
        return len(self.data)


def pack(vk: VerificationKey) -> PackedKey:
    """Encode `vk`; raises `MalformedVerificationKey` on a non-canonical coordinate."""
    parts = [
        _checked(vk.alpha, "alpha").to_bytes(),
        _checked(vk.beta, "beta").to_bytes(),
        _checked(vk.gamma, "gamma").to_bytes(),
        _checked(vk.delta, "delta").to_bytes(),
    ]
    parts.extend(_checked(p, f"ic[{i}]").to_bytes() for i, p in enumerate(vk.ic))
    data = b"".join(parts)
    assert len(data) == packed_size(vk.n_public)
    log.debug("packed key: n=%d len=%d", vk.n_public, len(data))
    return PackedKey(data=data, n_public=vk.n_public)


def _checked(point, section: str):
    if not all(is_base_element(c) for c in point.coords()):
        raise MalformedVerificationKey("coordinate is not a canonical base-field element", path=section)
    return point


def unpack(data: bytes) -> VerificationKey:
    """Inverse of `pack`."""
    data = bytes(data)
    if len(data) < packed_size(0) or (len(data) - KEY_IC) % G1_SIZE:
        raise MalformedVerificationKey(f"packed key has invalid length {len(data)}")

    def g2(off: int, section: str) -> G2Point:
        return _checked(G2Point.from_bytes(data[off : off + G2_SIZE]), section)

    ic = []
    for i, off in enumerate(range(KEY_IC, len(data), G1_SIZE)):
        ic.append(_checked(G1Point.from_bytes(data[off : off + G1_SIZE]), f"ic[{i}]"))
    return VerificationKey(
        alpha=_checked(G1Point.from_bytes(data[KEY_ALPHA : KEY_ALPHA + G1_SIZE]), "alpha"),
        beta=g2(KEY_BETA, "beta"),
        gamma=g2(KEY_GAMMA, "gamma"),
        delta=g2(KEY_DELTA, "delta"),
        ic=tuple(ic),
    )


__all__ = ["PackedKey", "pack", "unpack", "packed_size", "SECTION_OFFSETS"]
