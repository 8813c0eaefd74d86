"""
g16huff.verifiers.groth16_bn254
===============================

Groth16 verifier for BN254 (alt_bn128).

Verification equation (product form)
------------------------------------
    e(-A, B) * e(alpha, beta) * e(vk_x, gamma) * e(C, delta) == 1

where vk_x = IC[0] + sum_i pub[i] * IC[i+1].

Algorithm
---------
1. Reject immediately, before any group primitive runs, if
   len(pub) + 1 != len(IC)                       -> InputCountMismatch
2. acc := identity; for i ascending:
       require 0 <= pub[i] < r                   -> PublicInputOutOfRange
       acc := add(acc, scalar_mul(IC[i+1], pub[i]))
3. vk_x := add(IC[0], acc)
4. return multi_pairing([(-A, B), (alpha, beta), (vk_x, gamma), (C, delta)])

The accumulation order and the pair order are fixed so that the sequence of
primitive calls (and therefore the metered cost) is reproducible.

Front ends
----------
- `GenericVerifier`: parameterized by n at call time; derives the
  configuration from the key on every call.
- `SpecializedVerifier`: bound to a `VerifierConfig` precomputed once per
  key at generation time.
Both run `verify_with_config`, the single shared implementation.

Public API
----------
- VerifierConfig.from_key(vk) -> VerifierConfig
- verify_with_config(config, proof, public_inputs, backend) -> bool
- GenericVerifier(backend).verify(vk, proof, public_inputs) -> bool
- SpecializedVerifier(config, backend).verify(proof, public_inputs) -> bool
- verify_groth16(vk, proof, public_inputs, backend=None) -> VerificationResult
- default_backend() -> PyEccBackend

Errors from steps 1–4 propagate out of `verify_with_config` and the two
front ends. `verify_groth16` is the facade that turns them into a definite
`VerificationResult(ok=False, code=...)`.

License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import get_config
from ..errors import (VERIFICATION_ERRORS, G16ErrorCode, InputCountMismatch,
                      PublicInputOutOfRange)
from ..types import G1Point, Proof, VerificationKey
from .field import is_scalar_element
from .pairing_bn254 import PyEccBackend
from .primitives import GroupBackend, add, multi_pairing, negate, scalar_mul

log = logging.getLogger(__name__)


def default_backend() -> PyEccBackend:
    return PyEccBackend(check_g2_subgroup=get_config().check_g2_subgroup)


# ---------------------------
# Configuration
# ---------------------------


@dataclass(frozen=True)
class VerifierConfig:
    """
    Immutable constant table for one verification key.

    Built once (at generation time for the specialized front end) and passed
    explicitly into every verification call; nothing here is mutated later.
    """

    vk: VerificationKey
    n_public: int
    packed_key: bytes

    @classmethod
    def from_key(cls, vk: VerificationKey) -> "VerifierConfig":
        from ..codegen.packer import pack

        return cls(vk=vk, n_public=vk.n_public, packed_key=pack(vk).data)


# ---------------------------
# Core verification
# ---------------------------


def _check_count(config: VerifierConfig, public_inputs: Sequence[int]) -> None:
    if len(public_inputs) != config.n_public:
        raise InputCountMismatch(expected=config.n_public, got=len(public_inputs))


def compute_vk_x(
    config: VerifierConfig, public_inputs: Sequence[int], backend: GroupBackend
) -> G1Point:
    """vk_x = IC[0] + sum_i pub[i] * IC[i+1], range-checking each input first."""
    ic = config.vk.ic
    acc = G1Point.identity()
    for i, s in enumerate(public_inputs):
        if not is_scalar_element(s):
            raise PublicInputOutOfRange(index=i, value=s if isinstance(s, int) else None)
        acc = add(acc, scalar_mul(ic[i + 1], s, backend), backend)
    return add(ic[0], acc, backend)


def verify_with_config(
    config: VerifierConfig,
    proof: Proof,
    public_inputs: Sequence[int],
    backend: GroupBackend,
) -> bool:
    _check_count(config, public_inputs)
    vk = config.vk
    vk_x = compute_vk_x(config, public_inputs, backend)
    log.debug("vk_x computed over %d inputs", config.n_public)
    pairs = [
        (negate(proof.a), proof.b),
        (vk.alpha, vk.beta),
        (vk_x, vk.gamma),
        (proof.c, vk.delta),
    ]
    return multi_pairing(pairs, backend)


class GenericVerifier:
    """Front end parameterized by the public-input count at call time."""

    def __init__(self, backend: Optional[GroupBackend] = None) -> None:
        self.backend = backend or default_backend()

    def verify(self, vk: VerificationKey, proof: Proof, public_inputs: Sequence[int]) -> bool:
        return verify_with_config(VerifierConfig.from_key(vk), proof, public_inputs, self.backend)


class SpecializedVerifier:
    """Front end bound to a configuration precomputed for one key."""

    def __init__(self, config: VerifierConfig, backend: Optional[GroupBackend] = None) -> None:
        self.config = config
        self.backend = backend or default_backend()

    @property
    def n_public(self) -> int:
        return self.config.n_public

    def verify(self, proof: Proof, public_inputs: Sequence[int]) -> bool:
        return verify_with_config(self.config, proof, public_inputs, self.backend)


# ---------------------------
# Facade
# ---------------------------


@dataclass(frozen=True)
class VerificationResult:
    """Result of a verification attempt."""

    ok: bool
    code: Optional[G16ErrorCode] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:  # allows: if result: ...
        return self.ok


def verify_groth16(
    vk: VerificationKey,
    proof: Proof,
    public_inputs: Sequence[int],
    backend: Optional[GroupBackend] = None,
) -> VerificationResult:
    """
    Verify a proof; verification-time errors become a definite failure.

    Returns VerificationResult(ok=True) on success, ok=False with the error
    code otherwise. Anything that is not a verification-time error (a bug,
    a broken backend) propagates.
    """
    try:
        ok = GenericVerifier(backend).verify(vk, proof, public_inputs)
    except VERIFICATION_ERRORS as e:
        log.info("verification rejected: %s", e)
        return VerificationResult(ok=False, code=e.code, message=e.msg)
    if ok:
        return VerificationResult(ok=True)
    return VerificationResult(ok=False, message="pairing check failed")


__all__ = [
    "VerifierConfig",
    "compute_vk_x",
    "verify_with_config",
    "GenericVerifier",
    "SpecializedVerifier",
    "VerificationResult",
    "verify_groth16",
    "default_backend",
]
