"""
g16huff — Groth16 (BN254) verification and key-specialized Huff verifiers.

Layout
------
- `g16huff.types`       → points, keys, proofs, generation manifest
- `g16huff.errors`      → structured error taxonomy
- `g16huff.verifiers`   → primitives, py_ecc backend, verification algorithm
- `g16huff.codegen`     → layout, key packer, template, specializer, renderer
- `g16huff.machine`     → gas-metered execution of generated programs
- `g16huff.adapters`    → SnarkJS / native JSON loaders
- `g16huff.cli`         → `g16huff` command

Typical use
-----------
>>> from g16huff import load_vk, load_proof, verify_groth16, generate
>>> vk = load_vk("verification_key.json")
>>> verify_groth16(vk, load_proof("proof.json"), [33]).ok
True
>>> print(generate(vk).text)   # Huff source specialized for this key
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

from .errors import (VERIFICATION_ERRORS, CodegenIncompleteSubstitution,
                     FatalGroupOpFailure, G16Error, G16ErrorCode, InputCountMismatch,
                     MachineError, MalformedProof, MalformedVerificationKey,
                     PublicInputOutOfRange, TemplateError)
from .types import G1Point, G2Point, Proof, ProgramManifest, VerificationKey
from .version import __version__

_EXPORTS = {
    "verify_groth16": "verifiers.groth16_bn254",
    "VerificationResult": "verifiers.groth16_bn254",
    "GenericVerifier": "verifiers.groth16_bn254",
    "SpecializedVerifier": "verifiers.groth16_bn254",
    "VerifierConfig": "verifiers.groth16_bn254",
    "PyEccBackend": "verifiers.pairing_bn254",
    "layout": "codegen.layout",
    "pack": "codegen.packer",
    "unpack": "codegen.packer",
    "generate": "codegen.specializer",
    "specialize": "codegen.specializer",
    "write_outputs": "codegen.output",
    "ProgramVerifier": "machine.host",
    "load_vk": "adapters.snarkjs_loader",
    "load_proof": "adapters.snarkjs_loader",
    "load_public": "adapters.snarkjs_loader",
}


def __getattr__(name: str) -> Any:
    mod = _EXPORTS.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(f"{__name__}.{mod}"), name)


__all__ = [
    "__version__",
    "G16Error",
    "G16ErrorCode",
    "InputCountMismatch",
    "PublicInputOutOfRange",
    "FatalGroupOpFailure",
    "CodegenIncompleteSubstitution",
    "TemplateError",
    "MalformedVerificationKey",
    "MalformedProof",
    "MachineError",
    "VERIFICATION_ERRORS",
    "G1Point",
    "G2Point",
    "VerificationKey",
    "Proof",
    "ProgramManifest",
    *_EXPORTS,
]
