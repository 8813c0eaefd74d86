"""
Key specialization: template + layout + packed key -> concrete program.

`specialize` walks the template IR and replaces every placeholder with the
literal the layout symbol table (or the packed key) provides:

    Slot(name)                 -> Literal(symbols[name])
    Addr(base, delta)          -> Literal(symbols[base] + delta)
    Indexed(base, s, var, d)   -> Literal(symbols[base] + s * i + d)   (unrolled)
    Table(name, Slot(name))    -> Table(name, packed.data)
    Repeat(count, var, body)   -> body repeated count times           (unroll=True)
                               -> runtime loop                         (unroll=False)

The runtime loop keeps its index in memory at LOOP_COUNTER and stops when
`index < count` no longer holds, i.e. it compares the element index against
the element count. Indexed addresses inside the loop are computed from the
index at run time.

Substitution is exhaustive: whatever cannot be resolved is collected and
reported at once as `CodegenIncompleteSubstitution`.

`generate(vk)` chains layout, packing and specialization and returns a
`GeneratedVerifier` bundle (program IR, Huff text, layout, packed key,
manifest and the precomputed verifier configuration).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Set, Tuple

from ..config import GenConfig, get_config
from ..errors import CodegenIncompleteSubstitution, MalformedVerificationKey, TemplateError
from ..types import ProgramManifest, VerificationKey, compute_vk_hash
from ..verifiers.groth16_bn254 import SpecializedVerifier, VerifierConfig
from ..verifiers.primitives import GroupBackend
from ..version import __version__
from .ir import (Addr, Arg, ConstRef, Constant, FuncSig, Indexed, Instr, Invoke, Label,
                 LabelRef, Literal, Macro, Program, Push, Repeat, Slot, Table,
                 TableStart, Value, lit, ops, unresolved, walk)
from .layout import MemoryLayout, layout
from .packer import PackedKey, pack
from .render import render
from .template import KEY_TABLE, verifier_template

log = logging.getLogger(__name__)

_COUNTER = "LOOP_COUNTER"


# -----------------------------------------------------------------------------
# Template checks
# -----------------------------------------------------------------------------

def check_template(program: Program) -> None:
    """Structural validation; raises TemplateError."""
    names = [m.name for m in program.macros]
    if len(set(names)) != len(names):
        raise TemplateError("duplicate macro definition")
    macros = {m.name: m for m in program.macros}
    if program.entry not in macros:
        raise TemplateError(f"entry macro {program.entry!r} is not defined")
    functions = {f.name for f in program.functions}
    constants = {c.name for c in program.constants}
    tables = {t.name for t in program.tables}

    for m in program.macros:
        labels: Set[str] = set()
        for ins in walk(m.body):
            if isinstance(ins, Label):
                if ins.name in labels:
                    raise TemplateError("duplicate label", macro=m.name, label=ins.name)
                labels.add(ins.name)
            elif isinstance(ins, Invoke):
                callee = macros.get(ins.macro)
                if callee is None:
                    raise TemplateError("unknown macro", macro=m.name, callee=ins.macro)
                if len(callee.params) != len(ins.args):
                    raise TemplateError(
                        "wrong number of macro arguments",
                        macro=m.name,
                        callee=ins.macro,
                        expected=len(callee.params),
                        got=len(ins.args),
                    )
            elif isinstance(ins, Arg) and ins.name not in m.params:
                raise TemplateError("unknown macro argument", macro=m.name, arg=ins.name)
            elif isinstance(ins, ConstRef) and ins.name not in constants:
                raise TemplateError("unknown constant", macro=m.name, constant=ins.name)
            elif isinstance(ins, FuncSig) and ins.name not in functions:
                raise TemplateError("unknown function", macro=m.name, function=ins.name)
            elif isinstance(ins, TableStart) and ins.table not in tables:
                raise TemplateError("unknown table", macro=m.name, table=ins.table)
            elif isinstance(ins, Repeat):
                for inner in walk(ins.body):
                    if isinstance(inner, Label):
                        raise TemplateError("labels are not allowed inside a repeated body",
                                            macro=m.name, label=inner.name)


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------

class _Resolver:
    def __init__(self, symbols: Mapping[str, int], tables: Mapping[str, bytes], unroll: bool) -> None:
        self.symbols = symbols
        self.tables = tables
        self.unroll = unroll
        self.missing: List[str] = []
        self._loops = 0

    def _sym(self, name: str) -> Optional[int]:
        v = self.symbols.get(name)
        if v is None:
            self.missing.append(name)
        return v

    def value(self, v: Value, env: Mapping[str, int]) -> Value:
        if isinstance(v, Literal):
            return v
        if isinstance(v, Slot):
            base = self._sym(v.name)
            return v if base is None else Literal(base)
        if isinstance(v, Addr):
            base = self._sym(v.base)
            return v if base is None else Literal(base + v.delta)
        if isinstance(v, Indexed):
            base = self._sym(v.base)
            if v.var not in env:
                self.missing.append(v.var)
                return v
            if base is None:
                return v
            return Literal(base + v.stride * env[v.var] + v.delta)
        raise TemplateError(f"unknown value node {v!r}")

    def _lowered_index(self, v: Indexed) -> Tuple[Instr, ...]:
        """Runtime address: base + delta + stride * [LOOP_COUNTER]."""
        base = self._sym(v.base)
        counter = self._sym(_COUNTER)
        if base is None or counter is None:
            return (Push(v),)
        return (lit(counter),) + ops("mload") + (lit(v.stride),) + ops("mul") + (lit(base + v.delta),) + ops("add")

    def body(self, body: Tuple[Instr, ...], env: Mapping[str, int], loop_vars: Set[str]) -> Tuple[Instr, ...]:
        out: List[Instr] = []
        for ins in body:
            if isinstance(ins, Push):
                if isinstance(ins.value, Indexed) and ins.value.var in loop_vars:
                    out.extend(self._lowered_index(ins.value))
                else:
                    out.append(Push(self.value(ins.value, env)))
            elif isinstance(ins, Invoke):
                for a in walk(ins.args):
                    if isinstance(a, Push) and isinstance(a.value, Indexed) and a.value.var in loop_vars:
                        raise TemplateError("a loop-indexed address cannot be passed as a macro argument",
                                            macro=ins.macro)
                out.append(Invoke(ins.macro, self.body(ins.args, env, loop_vars)))
            elif isinstance(ins, Repeat):
                out.extend(self.repeat(ins, env, loop_vars))
            else:
                out.append(ins)
        return tuple(out)

    def repeat(self, rep: Repeat, env: Mapping[str, int], loop_vars: Set[str]) -> Tuple[Instr, ...]:
        count = self._sym(rep.count)
        if count is None:
            return (rep,)
        if self.unroll:
            out: List[Instr] = []
            for i in range(count):
                out.extend(self.body(rep.body, {**env, rep.var: i}, loop_vars))
            return tuple(out)

        if loop_vars:
            raise TemplateError("nested runtime loops are not supported", var=rep.var)
        counter = self._sym(_COUNTER)
        if counter is None:
            return (rep,)
        k = self._loops
        self._loops += 1
        start, end = f"repeat_{k}_start", f"repeat_{k}_end"
        return (
            (lit(0), lit(counter)) + ops("mstore")
            + (Label(start), lit(count), lit(counter)) + ops("mload lt iszero")
            + (LabelRef(end),) + ops("jumpi")
            + self.body(rep.body, env, {rep.var})
            + (lit(counter),) + ops("mload") + (lit(1),) + ops("add") + (lit(counter),) + ops("mstore")
            + (LabelRef(start),) + ops("jump")
            + (Label(end),)
        )

    def constant(self, c: Constant) -> Constant:
        return Constant(c.name, self.value(c.value, {}))

    def table(self, t: Table) -> Table:
        if isinstance(t.data, Slot):
            data = self.tables.get(t.data.name)
            if data is None:
                self.missing.append(t.data.name)
                return t
            return Table(t.name, bytes(data))
        return t

    def macro(self, m: Macro) -> Macro:
        self._loops = 0
        return replace(m, body=self.body(m.body, {}, set()))


def specialize(
    template: Program,
    layout_: MemoryLayout,
    packed: PackedKey,
    *,
    unroll: bool = True,
    extra_symbols: Optional[Mapping[str, int]] = None,
) -> Program:
    """Resolve every placeholder in `template`; see module docstring."""
    check_template(template)
    if packed.n_public != layout_.n:
        raise TemplateError("packed key and layout disagree on the input count",
                            packed=packed.n_public, layout=layout_.n)
    symbols: Dict[str, int] = layout_.symbols()
    if extra_symbols:
        symbols.update(extra_symbols)

    r = _Resolver(symbols, {KEY_TABLE: packed.data}, unroll)
    program = replace(
        template,
        constants=tuple(r.constant(c) for c in template.constants),
        tables=tuple(r.table(t) for t in template.tables),
        macros=tuple(r.macro(m) for m in template.macros),
    )
    leftover = r.missing + unresolved(program)
    if leftover:
        raise CodegenIncompleteSubstitution(leftover)
    log.debug("specialized %s: n=%d unroll=%s", template.name, layout_.n, unroll)
    return program


# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneratedVerifier:
    program: Program
    text: str
    layout: MemoryLayout
    packed: PackedKey
    manifest: ProgramManifest
    config: VerifierConfig

    @property
    def n_public(self) -> int:
        return self.layout.n

    def specialized_verifier(self, backend: Optional[GroupBackend] = None) -> SpecializedVerifier:
        """In-process verifier bound to the same precomputed configuration."""
        return SpecializedVerifier(self.config, backend)


def generate(
    vk: VerificationKey,
    *,
    unroll: Optional[bool] = None,
    program_name: Optional[str] = None,
    config: Optional[GenConfig] = None,
) -> GeneratedVerifier:
    cfg = config or get_config()
    unroll = cfg.unroll if unroll is None else unroll
    name = program_name or cfg.program_name
    n = vk.n_public
    if n > cfg.max_public_inputs:
        raise MalformedVerificationKey(
            f"key has {n} public inputs; the generator accepts at most {cfg.max_public_inputs}",
            path="ic",
        )

    lay = layout(n)
    packed = pack(vk)
    log.debug("layout n=%d regions=%s", n, lay.as_dict())
    log.debug("packed key sha3-256=%s", packed.digest())

    program = specialize(verifier_template(name), lay, packed, unroll=unroll)
    program = replace(program, meta={"generator": f"g16huff {__version__}", "n_public": str(n)})
    text = render(program)

    manifest = ProgramManifest(
        program=name,
        generator=f"g16huff {__version__}",
        n_public=n,
        unrolled=unroll,
        regions=lay.as_dict(),
        symbols=lay.symbols(),
        total_memory=lay.total_size,
        packed_key_len=len(packed.data),
        packed_key_sha3=packed.digest(),
        vk_hash=compute_vk_hash(vk),
    )
    log.info("generated %s: n=%d unroll=%s %d bytes of text", name, n, unroll, len(text))
    return GeneratedVerifier(
        program=program,
        text=text,
        layout=lay,
        packed=packed,
        manifest=manifest,
        config=VerifierConfig.from_key(vk),
    )


__all__ = ["check_template", "specialize", "generate", "GeneratedVerifier"]
