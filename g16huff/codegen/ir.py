"""
ir.py — typed program IR for generated verifiers.

A `Program` mirrors the top-level items of a Huff source file:

    #define function <sig> view returns (...)     -> Function
    #define constant NAME = <value>               -> Constant
    #define table NAME { <bytes> }                -> Table
    #define macro NAME(args) = takes(0) returns(0) { ... }  -> Macro

Macro bodies are tuples of instructions:

    Op("mload")            opcode mnemonic
    Push(value)            push a value (Literal / Slot / Addr / Indexed)
    Label("name")          jump destination
    LabelRef("name")       push a label address
    ConstRef("NAME")       push a constant ([NAME])
    Arg("name")            macro argument (<name>)
    Invoke("M", args)      inline macro M with the given argument instructions
    FuncSig("verify")      push a function selector (__FUNC_SIG)
    TableStart("T")        push a table's code offset (__tablestart)
    Repeat(count, var, body)
                           structured loop over var = 0 .. count-1

Values:

    Literal(v)             concrete integer
    Slot("NAME")           placeholder resolved from the layout symbol table
    Addr("BASE", delta)    symbol + constant delta
    Indexed("BASE", stride, var, delta)
                           symbol + stride * var + delta, var bound by a Repeat

A template contains Slot/Addr/Indexed/Repeat nodes; a *resolved* program
contains none of them (see `unresolved()`), only literals and the
label/constant/table references that the assembler resolves itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

# =============================================================================
# Values
# =============================================================================


@dataclass(frozen=True)
class Literal:
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or self.value < 0 or self.value >= 1 << 256:
            raise ValueError(f"literal out of range: {self.value!r}")


@dataclass(frozen=True)
class Slot:
    name: str


@dataclass(frozen=True)
class Addr:
    base: str
    delta: int = 0


@dataclass(frozen=True)
class Indexed:
    base: str
    stride: int
    var: str
    delta: int = 0


Value = Union[Literal, Slot, Addr, Indexed]


# =============================================================================
# Instructions
# =============================================================================


@dataclass(frozen=True)
class Op:
    name: str


@dataclass(frozen=True)
class Push:
    value: Value


@dataclass(frozen=True)
class Label:
    name: str


@dataclass(frozen=True)
class LabelRef:
    name: str


@dataclass(frozen=True)
class ConstRef:
    name: str


@dataclass(frozen=True)
class Arg:
    name: str


@dataclass(frozen=True)
class Invoke:
    macro: str
    args: Tuple["Instr", ...] = ()


@dataclass(frozen=True)
class FuncSig:
    name: str


@dataclass(frozen=True)
class TableStart:
    table: str


@dataclass(frozen=True)
class Repeat:
    count: str  # symbol holding the iteration count
    var: str
    body: Tuple["Instr", ...]


Instr = Union[Op, Push, Label, LabelRef, ConstRef, Arg, Invoke, FuncSig, TableStart, Repeat]


# =============================================================================
# Definitions
# =============================================================================


@dataclass(frozen=True)
class Function:
    name: str
    inputs: Tuple[str, ...]
    outputs: Tuple[str, ...] = ()
    mutability: str = "view"

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"


@dataclass(frozen=True)
class Constant:
    name: str
    value: Value


@dataclass(frozen=True)
class Table:
    name: str
    data: Union[bytes, Slot]


@dataclass(frozen=True)
class Macro:
    name: str
    params: Tuple[str, ...] = ()
    body: Tuple[Instr, ...] = ()
    takes: int = 0
    returns: int = 0


@dataclass(frozen=True)
class Program:
    name: str
    functions: Tuple[Function, ...] = ()
    constants: Tuple[Constant, ...] = ()
    tables: Tuple[Table, ...] = ()
    macros: Tuple[Macro, ...] = ()
    entry: str = "MAIN"
    meta: Dict[str, str] = field(default_factory=dict, compare=False)

    def macro(self, name: str) -> Macro:
        for m in self.macros:
            if m.name == name:
                return m
        raise KeyError(name)

    def constant(self, name: str) -> Constant:
        for c in self.constants:
            if c.name == name:
                return c
        raise KeyError(name)

    def table(self, name: str) -> Table:
        for t in self.tables:
            if t.name == name:
                return t
        raise KeyError(name)

    def function(self, name: str) -> Function:
        for f in self.functions:
            if f.name == name:
                return f
        raise KeyError(name)


# =============================================================================
# Helpers
# =============================================================================


def ops(text: str) -> Tuple[Op, ...]:
    """`ops("mload dup1 add")` -> (Op("mload"), Op("dup1"), Op("add"))."""
    return tuple(Op(name) for name in text.split())


def lit(v: int) -> Push:
    return Push(Literal(v))


def walk(body: Tuple[Instr, ...]) -> Iterator[Instr]:
    """Yield every instruction, descending into Repeat bodies and Invoke args."""
    for ins in body:
        yield ins
        if isinstance(ins, Repeat):
            yield from walk(ins.body)
        elif isinstance(ins, Invoke):
            yield from walk(ins.args)


def _value_placeholder(v: Value) -> Optional[str]:
    if isinstance(v, Slot):
        return v.name
    if isinstance(v, Addr):
        return f"{v.base}+{v.delta:#x}"
    if isinstance(v, Indexed):
        return f"{v.base}+{v.stride:#x}*{v.var}+{v.delta:#x}"
    return None


def unresolved(program: Program) -> List[str]:
    """Names of every placeholder still present in `program`."""
    names: List[str] = []
    for c in program.constants:
        p = _value_placeholder(c.value)
        if p is not None:
            names.append(p)
    for t in program.tables:
        if isinstance(t.data, Slot):
            names.append(t.data.name)
    for m in program.macros:
        for ins in walk(m.body):
            if isinstance(ins, Push):
                p = _value_placeholder(ins.value)
                if p is not None:
                    names.append(p)
            elif isinstance(ins, Repeat):
                names.append(f"repeat({ins.count})")
    return names


__all__ = [
    "Literal",
    "Slot",
    "Addr",
    "Indexed",
    "Value",
    "Op",
    "Push",
    "Label",
    "LabelRef",
    "ConstRef",
    "Arg",
    "Invoke",
    "FuncSig",
    "TableStart",
    "Repeat",
    "Instr",
    "Function",
    "Constant",
    "Table",
    "Macro",
    "Program",
    "ops",
    "lit",
    "walk",
    "unresolved",
]
