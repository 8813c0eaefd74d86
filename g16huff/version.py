"""
Version string for g16huff.

Embedded in generated program headers and manifests so artefacts can be
traced back to the generator that produced them. It can be overridden at
build time with the env var G16HUFF_VERSION.
"""

from __future__ import annotations

import os

__version__ = os.getenv("G16HUFF_VERSION", "0.1.0")


def runtime_banner(prefix: str = "g16huff") -> str:
    return f"{prefix} {__version__}"


__all__ = ["__version__", "runtime_banner"]
