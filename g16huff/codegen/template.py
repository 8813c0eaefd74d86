"""
The parameterized verifier program.

`verifier_template()` returns a `Program` written over symbolic slots: every
memory offset, region size, the public-input count and the packed-key table
are placeholders (`Slot`, `Addr`, `Indexed`) that only the specializer can
fill in. The structure is the verification algorithm itself:

    MAIN          selector dispatch to the four entry points
    VERIFY        verify(A, B, C, inputs) -> bool against the baked-in key
    NEGATE_ENTRY  negate(P)
    ADD_ENTRY     add(P, Q)       via precompile 0x06
    MUL_ENTRY     scalarMul(P, s) via precompile 0x07

Revert data is a single word holding one of the codes below.
"""

from __future__ import annotations

from typing import Tuple

from ..verifiers.field import Q, R
from .ir import (Addr, Arg, ConstRef, Constant, FuncSig, Function, Indexed, Instr,
                 Invoke, Label, LabelRef, Literal, Macro, Program, Push, Repeat, Slot,
                 Table, TableStart, lit, ops)

KEY_TABLE = "PACKED_KEY"

FAIL_INPUT_COUNT = 0x01
FAIL_INPUT_RANGE = 0x02
FAIL_GROUP_OP = 0x03

ECADD = 0x06
ECMUL = 0x07
ECPAIRING = 0x08

# Calldata sizes of the primitive entry points (selector included).
NEGATE_CALLDATA = 4 + 2 * 32
ADD_CALLDATA = 4 + 4 * 32
MUL_CALLDATA = 4 + 3 * 32

FUNCTIONS = (
    Function("verify", ("uint256[2]", "uint256[2][2]", "uint256[2]", "uint256[]"), ("bool",)),
    Function("negate", ("uint256[2]",), ("uint256[2]",)),
    Function("add", ("uint256[2]", "uint256[2]"), ("uint256[2]",)),
    Function("scalarMul", ("uint256[2]", "uint256"), ("uint256[2]",)),
)

# Layout symbols that become `#define constant` slots.
LAYOUT_CONSTANTS = (
    "N_INPUTS",
    "SCRATCH",
    "ACC",
    "IC_TABLE",
    "PAIRING",
    "PAIRING_SIZE",
    "STAGING",
    "LOOP_COUNTER",
    "RESULT",
    "MUL_IN",
    "MUL_SCALAR",
    "MUL_OUT",
    "ADD_IN",
    "STAGING_A",
    "STAGING_B",
    "STAGING_C",
    "STAGING_OFFSET_WORD",
    "STAGING_LENGTH",
    "ABI_ARRAY_OFFSET",
    "CALLDATA_SIZE",
    "CALLDATA_ARGS_SIZE",
    "KEY_ALPHA",
    "KEY_GAMMA",
    "KEY_DELTA",
    "KEY_IC",
    "KEY_IC_SIZE",
    "PAIR_SIZE",
    "G2_SIZE",
    "PAIRING_PAIR_0_G1",
    "PAIRING_PAIR_0_G2",
    "PAIRING_PAIR_1_G1",
    "PAIRING_PAIR_2_G1",
    "PAIRING_PAIR_2_G2",
    "PAIRING_PAIR_3_G1",
    "PAIRING_PAIR_3_G2",
)


def _c(name: str) -> ConstRef:
    return ConstRef(name)


def _a(base: str, delta: int) -> Push:
    return Push(Addr(base, delta))


def _copy(src: Instr, dst: Instr) -> Invoke:
    return Invoke("COPY_WORD", (src, dst))


def _copy_g1(src: str, dst: str) -> Tuple[Instr, ...]:
    return (_copy(_c(src), _c(dst)), _copy(_a(src, 0x20), _a(dst, 0x20)))


def _copy_g2(src: str, dst: str) -> Tuple[Instr, ...]:
    return tuple(
        _copy(_c(src) if d == 0 else _a(src, d), _c(dst) if d == 0 else _a(dst, d))
        for d in (0x00, 0x20, 0x40, 0x60)
    )


def _key_copy(size: str, section: str, dst: str) -> Tuple[Instr, ...]:
    # codecopy(dst, tablestart + section, size)
    return (_c(size), TableStart(KEY_TABLE), _c(section)) + ops("add") + (_c(dst),) + ops("codecopy")


def _check_size(expected: Instr, fail: str) -> Tuple[Instr, ...]:
    return ops("calldatasize") + (expected,) + ops("eq iszero") + (LabelRef(fail),) + ops("jumpi")


# -----------------------------------------------------------------------------
# Helper macros
# -----------------------------------------------------------------------------

# <src> -> <dst>, one word.
COPY_WORD = Macro(
    "COPY_WORD",
    ("src", "dst"),
    (Arg("src"),) + ops("mload") + (Arg("dst"),) + ops("mstore"),
)

# dst := -src, (0, 0) maps to itself.
NEG_G1 = Macro(
    "NEG_G1",
    ("src_x", "src_y", "dst_x", "dst_y"),
    (Arg("src_x"),) + ops("mload dup1") + (Arg("dst_x"),) + ops("mstore")
    + (Arg("src_y"),) + ops("mload dup1 dup3 or iszero") + (LabelRef("is_identity"),) + ops("jumpi")
    + (_c("Q"),) + ops("swap1 mod") + (_c("Q"),) + ops("sub")
    + (Label("is_identity"), Arg("dst_y")) + ops("mstore pop"),
)

# [MUL_OUT] := ecMul([MUL_IN] x, y, s)
EC_MUL = Macro(
    "EC_MUL",
    ("fail",),
    (lit(0x40), _c("MUL_OUT"), lit(0x60), _c("MUL_IN"), lit(ECMUL))
    + ops("gas staticcall iszero") + (Arg("fail"),) + ops("jumpi"),
)

# [ACC] := ecAdd(product, acc)
EC_ADD = Macro(
    "EC_ADD",
    ("fail",),
    (lit(0x40), _c("ACC"), lit(0x80), _c("ADD_IN"), lit(ECADD))
    + ops("gas staticcall iszero") + (Arg("fail"),) + ops("jumpi"),
)

FAIL = Macro(
    "FAIL",
    ("code",),
    (Arg("code"), _c("RESULT")) + ops("mstore") + (lit(0x20), _c("RESULT")) + ops("revert"),
)


# -----------------------------------------------------------------------------
# Entry points
# -----------------------------------------------------------------------------

def _msm_step() -> Tuple[Instr, ...]:
    """acc += pub[i] * IC[i + 1], after checking pub[i] < r."""
    return (
        (Push(Indexed("STAGING_INPUTS", 0x20, "i")),) + ops("mload")
        + (_c("R"),) + ops("dup2 lt iszero") + (LabelRef("out_of_range"),) + ops("jumpi")
        + (_c("MUL_SCALAR"),) + ops("mstore")
        + (Push(Indexed("IC_TABLE", 0x40, "i", 0x40)),) + ops("mload") + (_c("MUL_IN"),) + ops("mstore")
        + (Push(Indexed("IC_TABLE", 0x40, "i", 0x60)),) + ops("mload") + (_a("MUL_IN", 0x20),) + ops("mstore")
        + (Invoke("EC_MUL", (LabelRef("group_failure"),)), Invoke("EC_ADD", (LabelRef("group_failure"),)))
    )


VERIFY = Macro(
    "VERIFY",
    (),
    # calldata shape: size, array length, array offset
    _check_size(_c("CALLDATA_SIZE"), "count_mismatch")
    + (_c("CALLDATA_ARGS_SIZE"), lit(0x04), _c("STAGING")) + ops("calldatacopy")
    + (_c("STAGING_LENGTH"),) + ops("mload") + (_c("N_INPUTS"),) + ops("eq iszero")
    + (LabelRef("count_mismatch"),) + ops("jumpi")
    + (_c("STAGING_OFFSET_WORD"),) + ops("mload") + (_c("ABI_ARRAY_OFFSET"),) + ops("eq iszero")
    + (LabelRef("count_mismatch"),) + ops("jumpi")
    # IC table from the packed key
    + _key_copy("KEY_IC_SIZE", "KEY_IC", "IC_TABLE")
    # acc = sum pub[i] * IC[i + 1]
    + (Repeat("N_INPUTS", "i", _msm_step()),)
    # vk_x = IC[0] + acc
    + _copy_g1("IC_TABLE", "ADD_IN")
    + (Invoke("EC_ADD", (LabelRef("group_failure"),)),)
    # pairing buffer: (-A, B) (alpha, beta) (vk_x, gamma) (C, delta)
    + (Invoke("NEG_G1", (
        _c("STAGING_A"), _a("STAGING_A", 0x20),
        _c("PAIRING_PAIR_0_G1"), _a("PAIRING_PAIR_0_G1", 0x20),
    )),)
    + _copy_g2("STAGING_B", "PAIRING_PAIR_0_G2")
    + _key_copy("PAIR_SIZE", "KEY_ALPHA", "PAIRING_PAIR_1_G1")
    + _copy_g1("ACC", "PAIRING_PAIR_2_G1")
    + _key_copy("G2_SIZE", "KEY_GAMMA", "PAIRING_PAIR_2_G2")
    + _copy_g1("STAGING_C", "PAIRING_PAIR_3_G1")
    + _key_copy("G2_SIZE", "KEY_DELTA", "PAIRING_PAIR_3_G2")
    # e(-A, B) e(alpha, beta) e(vk_x, gamma) e(C, delta) == 1
    + (lit(0x20), _c("RESULT"), _c("PAIRING_SIZE"), _c("PAIRING"), lit(ECPAIRING))
    + ops("gas staticcall iszero") + (LabelRef("group_failure"),) + ops("jumpi")
    + (lit(0x20), _c("RESULT")) + ops("return")
    + (Label("count_mismatch"), Invoke("FAIL", (lit(FAIL_INPUT_COUNT),)))
    + (Label("out_of_range"), Invoke("FAIL", (lit(FAIL_INPUT_RANGE),)))
    + (Label("group_failure"), Invoke("FAIL", (lit(FAIL_GROUP_OP),))),
)

NEGATE_ENTRY = Macro(
    "NEGATE_ENTRY",
    (),
    _check_size(lit(NEGATE_CALLDATA), "bad_call")
    + (lit(0x40), lit(0x04), _c("STAGING")) + ops("calldatacopy")
    + (Invoke("NEG_G1", (_c("STAGING"), _a("STAGING", 0x20), _c("MUL_IN"), _a("MUL_IN", 0x20))),)
    + (lit(0x40), _c("MUL_IN")) + ops("return")
    + (Label("bad_call"), Invoke("FAIL", (lit(FAIL_INPUT_COUNT),))),
)

ADD_ENTRY = Macro(
    "ADD_ENTRY",
    (),
    _check_size(lit(ADD_CALLDATA), "bad_call")
    + (lit(0x80), lit(0x04), _c("ADD_IN")) + ops("calldatacopy")
    + (Invoke("EC_ADD", (LabelRef("group_failure"),)),)
    + (lit(0x40), _c("ACC")) + ops("return")
    + (Label("bad_call"), Invoke("FAIL", (lit(FAIL_INPUT_COUNT),)))
    + (Label("group_failure"), Invoke("FAIL", (lit(FAIL_GROUP_OP),))),
)

MUL_ENTRY = Macro(
    "MUL_ENTRY",
    (),
    _check_size(lit(MUL_CALLDATA), "bad_call")
    + (lit(0x60), lit(0x04), _c("MUL_IN")) + ops("calldatacopy")
    + (Invoke("EC_MUL", (LabelRef("group_failure"),)),)
    + (lit(0x40), _c("MUL_OUT")) + ops("return")
    + (Label("bad_call"), Invoke("FAIL", (lit(FAIL_INPUT_COUNT),)))
    + (Label("group_failure"), Invoke("FAIL", (lit(FAIL_GROUP_OP),))),
)


def _dispatch(fn: str, label: str) -> Tuple[Instr, ...]:
    return ops("dup1") + (FuncSig(fn),) + ops("eq") + (LabelRef(label),) + ops("jumpi")


MAIN = Macro(
    "MAIN",
    (),
    (lit(0x00),) + ops("calldataload") + (lit(0xE0),) + ops("shr")
    + _dispatch("verify", "verify_entry")
    + _dispatch("negate", "negate_entry")
    + _dispatch("add", "add_entry")
    + _dispatch("scalarMul", "mul_entry")
    + (lit(0x00), lit(0x00)) + ops("revert")
    + (Label("verify_entry"), Invoke("VERIFY"))
    + (Label("negate_entry"), Invoke("NEGATE_ENTRY"))
    + (Label("add_entry"), Invoke("ADD_ENTRY"))
    + (Label("mul_entry"), Invoke("MUL_ENTRY")),
)


def verifier_template(name: str = "Groth16Verifier") -> Program:
    constants = (
        Constant("Q", Literal(Q)),
        Constant("R", Literal(R)),
    ) + tuple(Constant(sym, Slot(sym)) for sym in LAYOUT_CONSTANTS)
    return Program(
        name=name,
        functions=FUNCTIONS,
        constants=constants,
        tables=(Table(KEY_TABLE, Slot(KEY_TABLE)),),
        macros=(COPY_WORD, NEG_G1, EC_MUL, EC_ADD, FAIL, VERIFY, NEGATE_ENTRY, ADD_ENTRY, MUL_ENTRY, MAIN),
    )


__all__ = [
    "verifier_template",
    "KEY_TABLE",
    "FUNCTIONS",
    "LAYOUT_CONSTANTS",
    "FAIL_INPUT_COUNT",
    "FAIL_INPUT_RANGE",
    "FAIL_GROUP_OP",
]
