"""
g16huff verifiers — Groth16 over BN254

- `g16huff.verifiers.field`          → curve constants and 32-byte word helpers
- `g16huff.verifiers.primitives`     → negate / add / scalar_mul / multi_pairing
- `g16huff.verifiers.pairing_bn254`  → py_ecc backed group backend
- `g16huff.verifiers.groth16_bn254`  → verification algorithm and front ends

Concrete modules are loaded lazily so that `g16huff.types` can depend on
`field` without pulling the py_ecc backend in.

>>> from g16huff.verifiers import verify_groth16
>>> verify_groth16(vk, proof, [33]).ok
True

License: MIT
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "GroupBackend": "primitives",
    "negate": "primitives",
    "add": "primitives",
    "scalar_mul": "primitives",
    "multi_pairing": "primitives",
    "PyEccBackend": "pairing_bn254",
    "VerifierConfig": "groth16_bn254",
    "verify_with_config": "groth16_bn254",
    "GenericVerifier": "groth16_bn254",
    "SpecializedVerifier": "groth16_bn254",
    "VerificationResult": "groth16_bn254",
    "verify_groth16": "groth16_bn254",
    "default_backend": "groth16_bn254",
}


def __getattr__(name: str) -> Any:
    mod = _EXPORTS.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(f"{__name__}.{mod}"), name)


__all__ = list(_EXPORTS)
