"""
g16huff.codegen — key-specializing generator

- `layout`       → closed-form memory layout for n public inputs
- `packer`       → canonical packed verification key
- `ir`           → typed program IR
- `template`     → the parameterized verifier program
- `specializer`  → template + layout + packed key -> resolved program
- `render`       → resolved program -> Huff text
- `output`       → atomic writes of the artefacts
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "MemoryLayout": "layout",
    "PackedKey": "packer",
    "pack": "packer",
    "unpack": "packer",
    "verifier_template": "template",
    "specialize": "specializer",
    "generate": "specializer",
    "GeneratedVerifier": "specializer",
    "write_outputs": "output",
}


def __getattr__(name: str) -> Any:
    mod = _EXPORTS.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(f"{__name__}.{mod}"), name)


__all__ = list(_EXPORTS)
