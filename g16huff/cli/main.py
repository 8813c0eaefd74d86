"""
g16huff.cli.main
================

Command-line front end for the generator and the verifier.

Examples
--------
# Specialize a verifier for a SnarkJS key, also writing the packed key and manifest:
g16huff generate verification_key.json --out Verifier.huff \
  --key-out vk.bin --manifest manifest.json

# Region map for 3 public inputs:
g16huff layout 3

# Verify a proof in-process, or by running the generated program on the
# metered machine:
g16huff verify verification_key.json proof.json --public public.json
g16huff verify verification_key.json proof.json --public public.json --program

Exit codes
----------
0  success (proof valid)
1  proof invalid (pairing check failed or verification-time error)
2  malformed input or generation failure
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from ..adapters.snarkjs_loader import load_proof, load_public, load_vk
from ..codegen.layout import layout as compute_layout
from ..codegen.output import write_files_atomic, write_outputs
from ..codegen.packer import pack, unpack
from ..codegen.specializer import generate
from ..config import get_config
from ..errors import VERIFICATION_ERRORS, G16Error
from ..types import compute_vk_hash
from ..verifiers.groth16_bn254 import verify_groth16
from ..version import runtime_banner

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_MALFORMED = 2

app = typer.Typer(
    name="g16huff",
    help="Groth16 (BN254) verifier and key-specializing Huff generator",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


# ---------- helpers ----------


def _configure_logging(verbose: int) -> None:
    level = get_config().log_level
    if verbose >= 2:
        level = "DEBUG"
    elif verbose == 1:
        level = "INFO"
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")


def _die(msg: str, code: int = EXIT_MALFORMED) -> None:
    err_console.print(f"[red]error:[/red] {msg}")
    raise typer.Exit(code)


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _region_table(title: str, regions: Dict[str, List[int]], total: int) -> Table:
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Region")
    t.add_column("Offset", justify="right")
    t.add_column("Size", justify="right")
    t.add_column("End", justify="right")
    for name, (offset, size) in regions.items():
        t.add_row(name, hex(offset), str(size), hex(offset + size))
    t.add_row("total", "", str(total), "")
    return t


# ---------- commands ----------


def _print_version(value: bool) -> None:
    if value:
        typer.echo(runtime_banner())
        raise typer.Exit(EXIT_OK)


@app.callback()
def _meta(
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit", is_eager=True, callback=_print_version
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="-v for INFO, -vv for DEBUG"),
) -> None:
    _configure_logging(verbose)


@app.command("generate")
def generate_cmd(
    vk_path: Path = typer.Argument(..., help="Verification key JSON (SnarkJS or native)"),
    out: Path = typer.Option(..., "--out", "-o", help="Where to write the Huff program"),
    key_out: Optional[Path] = typer.Option(None, "--key-out", help="Also write the packed key (binary)"),
    manifest: Optional[Path] = typer.Option(None, "--manifest", help="Also write the generation manifest (JSON)"),
    looped: Optional[bool] = typer.Option(
        None, "--looped/--unrolled", help="Runtime input loop instead of unrolling (default from config)"
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Program name in the header"),
) -> None:
    """Specialize a verifier program for one verification key."""
    try:
        vk = load_vk(vk_path)
        gen = generate(vk, unroll=None if looped is None else not looped, program_name=name)
        written = write_outputs(gen, out, key_out=key_out, manifest_out=manifest)
    except G16Error as e:
        _die(str(e))
        return
    except OSError as e:
        _die(f"could not write output: {e}")
        return
    for p in written:
        console.print(f"wrote [bold]{p}[/bold]")
    console.print(
        f"n_public={gen.n_public} unrolled={gen.manifest.unrolled} "
        f"memory={gen.layout.total_size} bytes key={len(gen.packed)} bytes"
    )


@app.command("layout")
def layout_cmd(
    n: int = typer.Argument(..., help="Number of public inputs"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
    symbols: bool = typer.Option(False, "--symbols", help="Include the derived symbol table"),
) -> None:
    """Print the memory layout for N public inputs."""
    try:
        lay = compute_layout(n)
    except ValueError as e:
        _die(str(e))
        return
    if json_out:
        obj: Dict[str, Any] = {"n": n, "regions": lay.as_dict(), "total": lay.total_size}
        if symbols:
            obj["symbols"] = lay.symbols()
        _print_json(obj)
        return
    console.print(_region_table(f"Memory layout (n={n})", lay.as_dict(), lay.total_size))
    if symbols:
        t = Table(title="Symbols", box=box.SIMPLE)
        t.add_column("Name")
        t.add_column("Value", justify="right")
        for k, v in lay.symbols().items():
            t.add_row(k, hex(v))
        console.print(t)


@app.command("pack")
def pack_cmd(
    vk_path: Path = typer.Argument(..., help="Verification key JSON"),
    out: Path = typer.Option(..., "--out", "-o", help="Where to write the packed key"),
) -> None:
    """Write the canonical packed encoding of a verification key."""
    try:
        packed = pack(load_vk(vk_path))
        write_files_atomic({out: packed.data})
    except G16Error as e:
        _die(str(e))
        return
    except OSError as e:
        _die(f"could not write output: {e}")
        return
    console.print(f"wrote [bold]{out}[/bold] ({len(packed)} bytes, sha3-256 {packed.digest()})")


@app.command("inspect")
def inspect_cmd(
    key_path: Path = typer.Argument(..., help="Packed key file"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Decode a packed key and print its sections."""
    try:
        vk = unpack(key_path.read_bytes())
    except G16Error as e:
        _die(str(e))
        return
    except OSError as e:
        _die(f"could not read {key_path}: {e}")
        return
    if json_out:
        _print_json({"n_public": vk.n_public, "vk_hash": compute_vk_hash(vk), "ic": len(vk.ic)})
        return
    t = Table(title=f"Packed key {key_path.name}", box=box.SIMPLE)
    t.add_column("Section")
    t.add_column("Value")
    t.add_row("n_public", str(vk.n_public))
    t.add_row("alpha.x", hex(vk.alpha.x))
    t.add_row("beta.x0", hex(vk.beta.x0))
    t.add_row("gamma.x0", hex(vk.gamma.x0))
    t.add_row("delta.x0", hex(vk.delta.x0))
    for i, p in enumerate(vk.ic):
        t.add_row(f"ic[{i}].x", hex(p.x))
    t.add_row("vk_hash", compute_vk_hash(vk))
    console.print(t)


@app.command("verify")
def verify_cmd(
    vk_path: Path = typer.Argument(..., help="Verification key JSON"),
    proof_path: Path = typer.Argument(..., help="Proof JSON"),
    public: Optional[Path] = typer.Option(
        None, "--public", "-p", help="Public inputs JSON (defaults to publicSignals in the proof file)"
    ),
    program: bool = typer.Option(False, "--program", help="Run the generated program on the metered machine"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Verify a proof. Exit code 0 if valid, 1 if invalid, 2 on malformed input."""
    try:
        vk = load_vk(vk_path)
        proof = load_proof(proof_path)
        inputs = load_public(public if public is not None else proof_path)
    except G16Error as e:
        _die(str(e))
        return

    gas: Optional[int] = None
    code: Optional[str] = None
    if program:
        from ..machine.host import ProgramVerifier

        try:
            host = ProgramVerifier(generate(vk))
            try:
                ok = host.verify(proof, inputs)
            except VERIFICATION_ERRORS as e:
                ok, code = False, e.code.value
            gas = host.gas_used
        except G16Error as e:
            _die(str(e))
            return
    else:
        res = verify_groth16(vk, proof, inputs)
        ok = res.ok
        code = res.code.value if res.code is not None else None

    if json_out:
        _print_json({"ok": ok, "code": code, "gas_used": gas, "n_public": vk.n_public})
    else:
        status = "[green]VALID[/green]" if ok else "[red]INVALID[/red]"
        extra = f" ({code})" if code else ""
        if gas is not None:
            extra += f" gas={gas}"
        console.print(f"{status}{extra}")
    raise typer.Exit(EXIT_OK if ok else EXIT_INVALID)


def main() -> None:
    app()


__all__ = ["app", "main"]
