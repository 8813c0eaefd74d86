"""
g16huff.machine.engine — deterministic, gas-metered interpreter for
generated verifier programs.

Two steps:

link(program) -> LinkedProgram
    Inline every macro starting from the entry macro. Labels are scoped per
    invocation (a macro invoked twice gets two distinct jump targets); a
    label reference resolves to the innermost enclosing invocation that
    defines it. Constants, function selectors (keccak-256 of the signature)
    and table offsets are resolved to integers. Tables are concatenated into
    the code-data segment read by `codecopy`; `__tablestart` is the table's
    offset in that segment.

Engine(linked).execute(calldata) -> ExecResult
    Runs the flat instruction list with a fresh, zero-initialized memory.
    Jump destinations are instruction indices that must hold a jumpdest.

Supported opcodes (EVM semantics, 256-bit words):
    stop add mul sub div mod addmod mulmod lt gt eq iszero and or xor not
    shl shr pop mload mstore jump jumpi jumpdest gas
    calldataload calldatasize calldatacopy codesize codecopy
    staticcall (precompiles 0x06/0x07/0x08 only) return revert
    dup1..dup16 swap1..swap16

Faults (out of gas, stack underflow/overflow, bad jump, unknown opcode or
call target) raise `MachineError`. A `revert` is not a fault: it returns
`ExecResult(success=False, output=<revert data>)`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from Crypto.Hash import keccak

from ..codegen.ir import (Arg, ConstRef, FuncSig, Instr, Invoke, Label, LabelRef, Literal,
                          Op, Program, Push, TableStart)
from ..config import get_config
from ..errors import MachineError
from ..verifiers.groth16_bn254 import default_backend
from ..verifiers.primitives import GroupBackend
from .gasmeter import (G_BASE, G_COPY, G_HIGH, G_JUMPDEST, G_LOW, G_MID, G_VERYLOW,
                       G_WARM_ACCESS, G_ZERO, GasMeter, words)
from .precompiles import Precompiles

log = logging.getLogger(__name__)

WORD_BITS = 256
MASK = (1 << WORD_BITS) - 1
STACK_LIMIT = 1024

_GAS: Dict[str, int] = {
    "stop": G_ZERO,
    "return": G_ZERO,
    "revert": G_ZERO,
    "jumpdest": G_JUMPDEST,
    "pop": G_BASE,
    "gas": G_BASE,
    "calldatasize": G_BASE,
    "codesize": G_BASE,
    "push": G_VERYLOW,
    "add": G_VERYLOW,
    "sub": G_VERYLOW,
    "lt": G_VERYLOW,
    "gt": G_VERYLOW,
    "eq": G_VERYLOW,
    "iszero": G_VERYLOW,
    "and": G_VERYLOW,
    "or": G_VERYLOW,
    "xor": G_VERYLOW,
    "not": G_VERYLOW,
    "shl": G_VERYLOW,
    "shr": G_VERYLOW,
    "mload": G_VERYLOW,
    "mstore": G_VERYLOW,
    "calldataload": G_VERYLOW,
    "calldatacopy": G_VERYLOW,
    "codecopy": G_VERYLOW,
    "mul": G_LOW,
    "div": G_LOW,
    "mod": G_LOW,
    "addmod": G_MID,
    "mulmod": G_MID,
    "jump": G_MID,
    "jumpi": G_HIGH,
    "staticcall": G_WARM_ACCESS,
}
for _i in range(1, 17):
    _GAS[f"dup{_i}"] = G_VERYLOW
    _GAS[f"swap{_i}"] = G_VERYLOW

OPCODES = frozenset(_GAS)


def selector(signature: str) -> int:
    """First four bytes of keccak-256(signature), as an int."""
    h = keccak.new(digest_bits=256)
    h.update(signature.encode("ascii"))
    return int.from_bytes(h.digest()[:4], "big")


# =============================================================================
# Linking
# =============================================================================


@dataclass(frozen=True)
class Instruction:
    op: str  # opcode name, or "push"
    arg: Optional[int] = None


@dataclass(frozen=True)
class LinkedProgram:
    name: str
    code: Tuple[Instruction, ...]
    data: bytes  # code-data segment (tables)
    tables: Mapping[str, int]
    selectors: Mapping[str, int]
    constants: Mapping[str, int]


class _Linker:
    def __init__(self, program: Program) -> None:
        self.program = program
        self.macros = {m.name: m for m in program.macros}
        self.constants: Dict[str, int] = {}
        for c in program.constants:
            if not isinstance(c.value, Literal):
                raise MachineError("cannot link an unresolved constant", constant=c.name)
            self.constants[c.name] = c.value.value
        self.tables: Dict[str, int] = {}
        chunks: List[bytes] = []
        offset = 0
        for t in program.tables:
            if not isinstance(t.data, (bytes, bytearray)):
                raise MachineError("cannot link an unresolved table", table=t.name)
            self.tables[t.name] = offset
            chunks.append(bytes(t.data))
            offset += len(t.data)
        self.data = b"".join(chunks)
        self.selectors = {f.name: selector(f.signature) for f in program.functions}
        # pending items: ("op", name) | ("push", int) | ("label", key) | ("ref", key)
        self.items: List[Tuple[str, object]] = []
        self._invocations = 0

    def _resolve_label(self, name: str, scopes: Sequence[Tuple[str, frozenset]]) -> str:
        for prefix, labels in reversed(scopes):
            if name in labels:
                return prefix + name
        raise MachineError("unknown label", label=name)

    def _item(self, ins: Instr, scopes, args: Mapping[str, Tuple[str, object]]) -> Tuple[str, object]:
        if isinstance(ins, Op):
            if ins.name not in OPCODES:
                raise MachineError("unsupported opcode", op=ins.name)
            return ("op", ins.name)
        if isinstance(ins, Push):
            if not isinstance(ins.value, Literal):
                raise MachineError("cannot link an unresolved value", value=repr(ins.value))
            return ("push", ins.value.value)
        if isinstance(ins, ConstRef):
            if ins.name not in self.constants:
                raise MachineError("unknown constant", constant=ins.name)
            return ("push", self.constants[ins.name])
        if isinstance(ins, LabelRef):
            return ("ref", self._resolve_label(ins.name, scopes))
        if isinstance(ins, FuncSig):
            if ins.name not in self.selectors:
                raise MachineError("unknown function", function=ins.name)
            return ("push", self.selectors[ins.name])
        if isinstance(ins, TableStart):
            if ins.table not in self.tables:
                raise MachineError("unknown table", table=ins.table)
            return ("push", self.tables[ins.table])
        if isinstance(ins, Arg):
            if ins.name not in args:
                raise MachineError("unbound macro argument", arg=ins.name)
            return args[ins.name]
        raise MachineError("unsupported instruction", instr=repr(ins))

    def expand(self, macro: str, args: Mapping[str, Tuple[str, object]], scopes, depth: int = 0) -> None:
        if depth > 64:
            raise MachineError("macro recursion too deep", macro=macro)
        m = self.macros.get(macro)
        if m is None:
            raise MachineError("unknown macro", macro=macro)
        self._invocations += 1
        prefix = f"{macro}#{self._invocations}/"
        labels = frozenset(ins.name for ins in m.body if isinstance(ins, Label))
        scopes = list(scopes) + [(prefix, labels)]
        for ins in m.body:
            if isinstance(ins, Label):
                self.items.append(("label", prefix + ins.name))
            elif isinstance(ins, Invoke):
                callee = self.macros.get(ins.macro)
                if callee is None:
                    raise MachineError("unknown macro", macro=ins.macro)
                if len(callee.params) != len(ins.args):
                    raise MachineError("wrong number of macro arguments", macro=ins.macro)
                bound = {p: self._item(a, scopes, args) for p, a in zip(callee.params, ins.args)}
                self.expand(ins.macro, bound, scopes, depth + 1)
            else:
                self.items.append(self._item(ins, scopes, args))

    def finish(self) -> Tuple[Instruction, ...]:
        index: Dict[str, int] = {}
        for pc, (kind, value) in enumerate(self.items):
            if kind == "label":
                index[str(value)] = pc
        code: List[Instruction] = []
        for kind, value in self.items:
            if kind == "label":
                code.append(Instruction("jumpdest"))
            elif kind == "ref":
                code.append(Instruction("push", index[str(value)]))
            elif kind == "push":
                code.append(Instruction("push", int(value)))  # type: ignore[arg-type]
            else:
                code.append(Instruction(str(value)))
        return tuple(code)


def link(program: Program) -> LinkedProgram:
    """Flatten a resolved program into an executable instruction list."""
    lk = _Linker(program)
    lk.expand(program.entry, {}, [])
    code = lk.finish()
    log.debug("linked %s: %d instructions, %d data bytes", program.name, len(code), len(lk.data))
    return LinkedProgram(
        name=program.name,
        code=code,
        data=lk.data,
        tables=dict(lk.tables),
        selectors=dict(lk.selectors),
        constants=dict(lk.constants),
    )


# =============================================================================
# Execution
# =============================================================================


@dataclass(frozen=True)
class ExecResult:
    success: bool
    output: bytes
    gas_used: int
    steps: int


def _require(stack: Sequence[int], n: int, op: str) -> None:
    if len(stack) < n:
        raise MachineError("stack underflow", op=op, need=n, have=len(stack))


class Engine:
    """Deterministic, gas-first interpreter for linked programs."""

    def __init__(
        self,
        program: "LinkedProgram | Program",
        *,
        backend: Optional[GroupBackend] = None,
        gas_limit: Optional[int] = None,
    ) -> None:
        if isinstance(program, Program):
            program = link(program)
        self.program = program
        self.precompiles = Precompiles(backend or default_backend())
        self.gas_limit = get_config().gas_limit if gas_limit is None else gas_limit

    # ---------- memory helpers ---------- #

    @staticmethod
    def _touch(mem: bytearray, gm: GasMeter, offset: int, size: int) -> None:
        if size == 0:
            return
        if offset + size > 1 << 32:
            raise MachineError("memory access out of range", offset=offset, size=size)
        new_words = words(offset + size)
        old_words = len(mem) // 32
        if new_words > old_words:
            gm.expand_memory(old_words, new_words)
            mem.extend(b"\x00" * (32 * (new_words - old_words)))

    @staticmethod
    def _slice(src: bytes, offset: int, size: int) -> bytes:
        return src[offset : offset + size].ljust(size, b"\x00") if offset < len(src) else b"\x00" * size

    # ---------- execution ---------- #

    def execute(self, calldata: bytes) -> ExecResult:
        code = self.program.code
        data = self.program.data
        calldata = bytes(calldata)
        gm = GasMeter(limit=self.gas_limit)
        mem = bytearray()
        stack: List[int] = []
        pc = 0
        steps = 0

        def done(success: bool, output: bytes) -> ExecResult:
            return ExecResult(success=success, output=output, gas_used=gm.used, steps=steps)

        while True:
            if pc >= len(code):
                return done(True, b"")
            ins = code[pc]
            op = ins.op
            gm.consume(_GAS[op])
            steps += 1
            pc += 1

            if op == "push":
                if len(stack) >= STACK_LIMIT:
                    raise MachineError("stack overflow", pc=pc - 1)
                stack.append(int(ins.arg) & MASK)  # type: ignore[arg-type]
                continue

            if op == "jumpdest":
                continue

            if op.startswith("dup"):
                k = int(op[3:])
                _require(stack, k, op)
                if len(stack) >= STACK_LIMIT:
                    raise MachineError("stack overflow", pc=pc - 1)
                stack.append(stack[-k])
                continue

            if op.startswith("swap"):
                k = int(op[4:])
                _require(stack, k + 1, op)
                stack[-1], stack[-1 - k] = stack[-1 - k], stack[-1]
                continue

            if op == "pop":
                _require(stack, 1, op)
                stack.pop()
                continue

            if op in ("add", "mul", "sub", "div", "mod", "lt", "gt", "eq", "and", "or", "xor", "shl", "shr"):
                _require(stack, 2, op)
                a = stack.pop()
                b = stack.pop()
                if op == "add":
                    r = (a + b) & MASK
                elif op == "mul":
                    r = (a * b) & MASK
                elif op == "sub":
                    r = (a - b) & MASK
                elif op == "div":
                    r = 0 if b == 0 else a // b
                elif op == "mod":
                    r = 0 if b == 0 else a % b
                elif op == "lt":
                    r = int(a < b)
                elif op == "gt":
                    r = int(a > b)
                elif op == "eq":
                    r = int(a == b)
                elif op == "and":
                    r = a & b
                elif op == "or":
                    r = a | b
                elif op == "xor":
                    r = a ^ b
                elif op == "shl":
                    r = (b << a) & MASK if a < WORD_BITS else 0
                else:  # shr
                    r = b >> a if a < WORD_BITS else 0
                stack.append(r)
                continue

            if op in ("addmod", "mulmod"):
                _require(stack, 3, op)
                a, b, n = stack.pop(), stack.pop(), stack.pop()
                if n == 0:
                    stack.append(0)
                else:
                    stack.append((a + b) % n if op == "addmod" else (a * b) % n)
                continue

            if op in ("iszero", "not"):
                _require(stack, 1, op)
                a = stack.pop()
                stack.append(int(a == 0) if op == "iszero" else (~a) & MASK)
                continue

            if op == "gas":
                stack.append(gm.remaining)
                continue

            if op == "calldatasize":
                stack.append(len(calldata))
                continue

            if op == "codesize":
                stack.append(len(data))
                continue

            if op == "calldataload":
                _require(stack, 1, op)
                off = stack.pop()
                stack.append(int.from_bytes(self._slice(calldata, off, 32), "big"))
                continue

            if op == "mload":
                _require(stack, 1, op)
                off = stack.pop()
                self._touch(mem, gm, off, 32)
                stack.append(int.from_bytes(mem[off : off + 32], "big"))
                continue

            if op == "mstore":
                _require(stack, 2, op)
                off, value = stack.pop(), stack.pop()
                self._touch(mem, gm, off, 32)
                mem[off : off + 32] = value.to_bytes(32, "big")
                continue

            if op in ("calldatacopy", "codecopy"):
                _require(stack, 3, op)
                dst, src_off, size = stack.pop(), stack.pop(), stack.pop()
                gm.consume(G_COPY * words(size))
                self._touch(mem, gm, dst, size)
                src = calldata if op == "calldatacopy" else data
                mem[dst : dst + size] = self._slice(src, src_off, size)
                continue

            if op in ("jump", "jumpi"):
                _require(stack, 1 if op == "jump" else 2, op)
                dest = stack.pop()
                if op == "jumpi" and stack.pop() == 0:
                    continue
                if dest >= len(code) or code[dest].op != "jumpdest":
                    raise MachineError("bad jump destination", dest=dest, pc=pc - 1)
                pc = dest
                continue

            if op == "staticcall":
                _require(stack, 6, op)
                _gas, addr, in_off, in_size, out_off, out_size = (stack.pop() for _ in range(6))
                if addr not in self.precompiles:
                    raise MachineError("unsupported call target", address=hex(addr))
                self._touch(mem, gm, in_off, in_size)
                self._touch(mem, gm, out_off, out_size)
                payload = bytes(mem[in_off : in_off + in_size])
                gm.consume(self.precompiles.gas_cost(addr, payload))
                ok, output = self.precompiles.call(addr, payload)
                if ok:
                    n = min(out_size, len(output))
                    mem[out_off : out_off + n] = output[:n]
                stack.append(int(ok))
                continue

            if op in ("return", "revert"):
                _require(stack, 2, op)
                off, size = stack.pop(), stack.pop()
                self._touch(mem, gm, off, size)
                return done(op == "return", bytes(mem[off : off + size]))

            if op == "stop":
                return done(True, b"")

            raise MachineError("unsupported opcode", op=op)


__all__ = ["link", "selector", "Engine", "ExecResult", "LinkedProgram", "Instruction", "OPCODES"]
