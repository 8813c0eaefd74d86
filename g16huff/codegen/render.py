"""
Render a resolved `Program` to Huff source text.

Numeric literals are emitted as even-length lowercase hex (`0x00`, `0x0140`).
Constants become `#define constant`, the packed key becomes a code table,
and each macro is written one statement per line: a line ends after a
store, a jump, a copy, a call or a halting opcode.
"""

from __future__ import annotations

from typing import List

from ..errors import CodegenIncompleteSubstitution
from .ir import (Arg, ConstRef, FuncSig, Instr, Invoke, Label, LabelRef, Literal, Macro,
                 Op, Program, Push, TableStart, unresolved)

_LINE_BREAK_OPS = frozenset(
    {"mstore", "jumpi", "jump", "return", "revert", "stop", "calldatacopy", "codecopy", "pop"}
)


def hex_literal(v: int) -> str:
    h = f"{v:x}"
    if len(h) % 2:
        h = "0" + h
    return "0x" + h


def render_instr(ins: Instr) -> str:
    if isinstance(ins, Op):
        return ins.name
    if isinstance(ins, Push):
        if not isinstance(ins.value, Literal):
            raise CodegenIncompleteSubstitution([repr(ins.value)])
        return hex_literal(ins.value.value)
    if isinstance(ins, LabelRef):
        return ins.name
    if isinstance(ins, ConstRef):
        return f"[{ins.name}]"
    if isinstance(ins, Arg):
        return f"<{ins.name}>"
    if isinstance(ins, FuncSig):
        return f"__FUNC_SIG({ins.name})"
    if isinstance(ins, TableStart):
        return f"__tablestart({ins.table})"
    if isinstance(ins, Invoke):
        return f"{ins.macro}({', '.join(render_instr(a) for a in ins.args)})"
    raise CodegenIncompleteSubstitution([repr(ins)])


def _macro_lines(m: Macro) -> List[str]:
    lines: List[str] = []
    cur: List[str] = []

    def flush() -> None:
        if cur:
            lines.append("    " + " ".join(cur))
            cur.clear()

    for ins in m.body:
        if isinstance(ins, Label):
            flush()
            lines.append(f"  {ins.name}:")
            continue
        cur.append(render_instr(ins))
        if isinstance(ins, Invoke) or (isinstance(ins, Op) and ins.name in _LINE_BREAK_OPS):
            flush()
    flush()
    params = ", ".join(m.params)
    return [f"#define macro {m.name}({params}) = takes({m.takes}) returns({m.returns}) {{", *lines, "}"]


def render(program: Program) -> str:
    """Huff source for a fully resolved program."""
    left = unresolved(program)
    if left:
        raise CodegenIncompleteSubstitution(left)

    out: List[str] = [f"/// @title {program.name}"]
    generator = program.meta.get("generator")
    n_public = program.meta.get("n_public")
    if generator or n_public:
        notice = "Groth16 (BN254) verifier"
        if n_public is not None:
            notice += f" specialized for {n_public} public input(s)"
        if generator:
            notice += f"; generated by {generator}"
        out.append(f"/// @notice {notice}. Do not edit.")
    out.append("")

    out.append("/* Interface */")
    for f in program.functions:
        returns = f" returns ({','.join(f.outputs)})" if f.outputs else ""
        out.append(f"#define function {f.signature} {f.mutability}{returns}")
    out.append("")

    out.append("/* Constants */")
    for c in program.constants:
        out.append(f"#define constant {c.name} = {hex_literal(c.value.value)}")  # type: ignore[union-attr]
    out.append("")

    if program.tables:
        out.append("/* Tables */")
        for t in program.tables:
            out.append(f"#define table {t.name} {{")
            out.append(f"    0x{bytes(t.data).hex()}")  # type: ignore[arg-type]
            out.append("}")
        out.append("")

    out.append("/* Macros */")
    for m in program.macros:
        out.extend(_macro_lines(m))
        out.append("")
    return "\n".join(out)


__all__ = ["render", "render_instr", "hex_literal"]
