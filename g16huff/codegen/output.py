"""
Atomic output of generation artefacts.

Every file is first written to a temporary sibling. Only when all of them
were written successfully are they moved into place with `os.replace`;
existing targets are copied aside beforehand and restored if a later move
fails, so a failed run leaves every target as it was.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import msgspec

from .specializer import GeneratedVerifier

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def _write_tmp(path: Path, data: bytes) -> str:
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        os.remove(tmp_path)
        raise
    return tmp_path


def write_files_atomic(files: Dict[Path, bytes]) -> None:
    """
    Write all files or none of them.

    New contents are staged next to their targets first. Existing targets
    are copied aside before the first `os.replace`; if any replace fails,
    every target already committed is restored from its copy (or removed
    when it did not exist before) and the error is re-raised.
    """
    for path in files:
        if path.is_dir():
            raise IsADirectoryError(f"output target is a directory: {path}")

    staged: List[Tuple[str, Path]] = []
    backups: Dict[Path, Optional[str]] = {}
    committed: List[Path] = []
    try:
        for path, data in files.items():
            staged.append((_write_tmp(path, data), path))
        for _, path in staged:
            backups[path] = _write_tmp(path, path.read_bytes()) if path.exists() else None
        for tmp_path, path in staged:
            os.replace(tmp_path, path)
            committed.append(path)
    except BaseException:
        for path in reversed(committed):
            backup = backups.pop(path)
            if backup is None:
                os.remove(path)
            else:
                os.replace(backup, path)
            log.warning("rolled back %s", path)
        for tmp_path, _ in staged:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        for backup in backups.values():
            if backup is not None and os.path.exists(backup):
                os.remove(backup)
        raise
    for backup in backups.values():
        if backup is not None:
            os.remove(backup)


def manifest_bytes(generated: GeneratedVerifier) -> bytes:
    return msgspec.json.format(msgspec.json.encode(generated.manifest), indent=2) + b"\n"


def write_outputs(
    generated: GeneratedVerifier,
    out: PathLike,
    *,
    key_out: Optional[PathLike] = None,
    manifest_out: Optional[PathLike] = None,
) -> List[Path]:
    """Write program text (and optionally the packed key and manifest)."""
    files: Dict[Path, bytes] = {Path(out): generated.text.encode("utf-8")}
    if key_out is not None:
        files[Path(key_out)] = generated.packed.data
    if manifest_out is not None:
        files[Path(manifest_out)] = manifest_bytes(generated)
    write_files_atomic(files)
    for p in files:
        log.info("wrote %s", p)
    return list(files)


__all__ = ["write_outputs", "write_files_atomic", "manifest_bytes"]
