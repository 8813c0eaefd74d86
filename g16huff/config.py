"""
g16huff.config — generator defaults, machine limits and backend flags.

Configuration precedence:
  1) Environment variables (G16HUFF_*)
  2) Override file named by G16HUFF_CONFIG (YAML or JSON, same keys as the
     `GenConfig` fields)
  3) Hardcoded defaults below

Key env vars (case-insensitive where boolean):
  - G16HUFF_UNROLL              (bool)  default: true
  - G16HUFF_GAS_LIMIT           (int)   default: 30_000_000
  - G16HUFF_MAX_PUBLIC_INPUTS   (int)   default: 1024
  - G16HUFF_CHECK_G2_SUBGROUP   (bool)  default: true
  - G16HUFF_PROGRAM_NAME        (str)   default: Groth16Verifier
  - G16HUFF_LOG_LEVEL           (str)   default: WARNING
  - G16HUFF_CONFIG              (path)  optional override file

Usage:
    from g16huff.config import load_config
    CFG = load_config()
    if CFG.unroll: ...
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

log = logging.getLogger(__name__)

_TRUE = ("1", "true", "t", "yes", "y", "on")
_FALSE = ("0", "false", "f", "no", "n", "off")


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    log.warning("ignoring unparsable boolean %s=%r", name, raw)
    return default


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        log.warning("ignoring unparsable integer %s=%r", name, raw)
        return default
    return max(min_v, min(max_v, v))


def _load_override_file(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, Mapping):
        raise ValueError(f"config file {path} must contain a mapping")
    return dict(data)


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class GenConfig:
    # Code generation
    unroll: bool = True
    program_name: str = "Groth16Verifier"
    max_public_inputs: int = 1024

    # Metered machine
    gas_limit: int = 30_000_000

    # Group backend
    check_g2_subgroup: bool = True

    # CLI
    log_level: str = "WARNING"

    def with_overrides(self, overrides: Mapping[str, Any]) -> "GenConfig":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return replace(self, **dict(overrides))


def load_config(path: Optional[Path] = None) -> GenConfig:
    """
    Build a GenConfig from defaults, an optional override file and the
    environment. Pass `path` to use a specific override file.
    """
    cfg = GenConfig()

    file_path = path
    if file_path is None:
        raw = os.getenv("G16HUFF_CONFIG")
        if raw:
            file_path = Path(raw).expanduser()
    if file_path is not None:
        cfg = cfg.with_overrides(_load_override_file(file_path))
        log.debug("loaded config overrides from %s", file_path)

    return GenConfig(
        unroll=_env_bool("G16HUFF_UNROLL", cfg.unroll),
        program_name=os.getenv("G16HUFF_PROGRAM_NAME", cfg.program_name),
        max_public_inputs=_env_int(
            "G16HUFF_MAX_PUBLIC_INPUTS", cfg.max_public_inputs, min_v=0, max_v=1 << 16
        ),
        gas_limit=_env_int("G16HUFF_GAS_LIMIT", cfg.gas_limit, min_v=21_000, max_v=1 << 40),
        check_g2_subgroup=_env_bool("G16HUFF_CHECK_G2_SUBGROUP", cfg.check_g2_subgroup),
        log_level=os.getenv("G16HUFF_LOG_LEVEL", cfg.log_level).upper(),
    )


@lru_cache(maxsize=1)
def get_config() -> GenConfig:
    """Process-wide config, read once."""
    return load_config()


__all__ = ["GenConfig", "load_config", "get_config"]
