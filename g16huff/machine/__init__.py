"""
g16huff.machine — gas-metered execution of generated verifier programs

- `gasmeter`     → GasMeter and EVM memory pricing
- `precompiles`  → BN254 ecAdd / ecMul / ecPairing over a group backend
- `engine`       → link() and the interpreter
- `host`         → ProgramVerifier: ABI calls and revert-code mapping
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "GasMeter": "gasmeter",
    "Precompiles": "precompiles",
    "link": "engine",
    "Engine": "engine",
    "ExecResult": "engine",
    "ProgramVerifier": "host",
}


def __getattr__(name: str) -> Any:
    mod = _EXPORTS.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(f"{__name__}.{mod}"), name)


__all__ = list(_EXPORTS)
