"""
Metered machine: linker, interpreter, precompiles and the generated
verifier program driven through ProgramVerifier.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from g16huff.codegen.ir import (Arg, Invoke, Label, LabelRef, Macro, Op, Program, Table,
                                TableStart, lit, ops)
from g16huff.codegen.specializer import generate
from g16huff.errors import (FatalGroupOpFailure, InputCountMismatch, MachineError,
                            PublicInputOutOfRange)
from g16huff.machine.engine import Engine, link, selector
from g16huff.machine.gasmeter import GasMeter, memory_cost, words
from g16huff.machine.host import ProgramVerifier
from g16huff.machine.precompiles import (ECADD_ADDRESS, ECMUL_ADDRESS, ECPAIRING_ADDRESS,
                                         Precompiles)
from g16huff.tests import CountingBackend, configure_test_logging, g1, make_triple
from g16huff.types import G1Point
from g16huff.verifiers.field import R, to_word
from g16huff.verifiers.pairing_bn254 import PyEccBackend, g1_generator
from g16huff.verifiers.primitives import negate

configure_test_logging()


def _main(*body, tables=(), extra=()) -> Program:
    return Program(name="T", tables=tables, macros=tuple(extra) + (Macro("MAIN", (), tuple(body)),))


RETURN_WORD_0 = (lit(0x20), lit(0)) + ops("return")


# ---------------------------------------------------------------------------
# Gas meter
# ---------------------------------------------------------------------------


def test_memory_cost_is_quadratic():
    assert words(0) == 0 and words(1) == 1 and words(33) == 2
    assert memory_cost(0) == 0
    assert memory_cost(1) == 3
    assert memory_cost(32) == 3 * 32 + 2
    assert memory_cost(1024) == 3 * 1024 + 2048


def test_out_of_gas_leaves_meter_unchanged():
    gm = GasMeter(limit=10)
    gm.consume(7)
    with pytest.raises(MachineError):
        gm.consume(4)
    assert gm.used == 7 and gm.remaining == 3
    gm.expand_memory(0, 1)
    assert gm.used == 10


def test_gas_limit_must_be_non_negative():
    with pytest.raises(MachineError):
        GasMeter(limit=-1)


# ---------------------------------------------------------------------------
# Linker and interpreter
# ---------------------------------------------------------------------------


def test_selector_is_keccak_prefix():
    assert selector("transfer(address,uint256)") == 0xA9059CBB


def test_arithmetic_and_gas_accounting():
    prog = _main(lit(2), lit(3), *ops("add"), lit(0), *ops("mstore"), *RETURN_WORD_0)
    res = Engine(prog, gas_limit=1000).execute(b"")
    assert res.success is True
    assert int.from_bytes(res.output, "big") == 5
    # 7 pushes/ops at 3 gas, one word of memory at 3 gas, return is free
    assert res.gas_used == 24
    assert res.steps == 8


def test_macro_labels_are_scoped_per_invocation():
    skip = Macro("SKIP", (), (LabelRef("over"),) + ops("jump") + (lit(0), lit(0)) + ops("revert") + (Label("over"),))
    prog = _main(Invoke("SKIP"), Invoke("SKIP"), *RETURN_WORD_0, extra=(skip,))
    linked = link(prog)
    assert sum(1 for i in linked.code if i.op == "jumpdest") == 2
    assert Engine(linked).execute(b"").success is True


def test_macro_arguments_are_substituted():
    store = Macro("STORE", ("v", "off"), (Arg("v"), Arg("off")) + ops("mstore"))
    prog = _main(Invoke("STORE", (lit(7), lit(0))), *RETURN_WORD_0, extra=(store,))
    assert Engine(prog).execute(b"").output == to_word(7)


def test_codecopy_reads_tables_at_their_offsets():
    tables = (Table("A", b"\xaa" * 4), Table("B", bytes(range(32))))
    prog = _main(lit(32), TableStart("B"), lit(0), *ops("codecopy"), *RETURN_WORD_0, tables=tables)
    linked = link(prog)
    assert linked.tables == {"A": 0, "B": 4}
    assert Engine(linked).execute(b"").output == bytes(range(32))


def test_calldata_is_zero_padded():
    prog = _main(lit(0), *ops("calldataload"), lit(0), *ops("mstore"), *RETURN_WORD_0)
    out = Engine(prog).execute(b"\x01\x02").output
    assert out == b"\x01\x02" + b"\x00" * 30


def test_revert_is_a_result_not_a_fault():
    res = Engine(_main(lit(0x20), lit(0), *ops("revert"))).execute(b"")
    assert res.success is False
    assert res.output == b"\x00" * 32


def test_running_off_the_end_stops():
    res = Engine(_main(lit(1), *ops("pop"))).execute(b"")
    assert res.success is True and res.output == b""


@pytest.mark.parametrize(
    "body",
    [
        ops("add"),  # stack underflow
        (lit(1),) + ops("jump"),  # not a jumpdest
        (lit(0), lit(0), lit(0), lit(0), lit(1)) + ops("gas staticcall"),  # not a precompile
    ],
)
def test_faults_raise_machine_error(body):
    with pytest.raises(MachineError):
        Engine(_main(*body)).execute(b"")


def test_out_of_gas_is_a_fault():
    with pytest.raises(MachineError) as ei:
        Engine(_main(lit(1), lit(2), lit(3)), gas_limit=8).execute(b"")
    assert ei.value.msg == "out of gas"


def test_unknown_opcode_fails_at_link_time():
    with pytest.raises(MachineError):
        link(_main(Op("sstore")))


def test_unknown_label_fails_at_link_time():
    with pytest.raises(MachineError):
        link(_main(LabelRef("nowhere")))


# ---------------------------------------------------------------------------
# Precompiles
# ---------------------------------------------------------------------------


def test_precompile_gas_schedule():
    pc = Precompiles(PyEccBackend())
    assert pc.gas_cost(ECADD_ADDRESS, b"") == 150
    assert pc.gas_cost(ECMUL_ADDRESS, b"") == 6000
    assert pc.gas_cost(ECPAIRING_ADDRESS, b"\x00" * 192 * 4) == 45000 + 4 * 34000
    assert 0x01 not in pc


def test_precompile_add_and_mul():
    pc = Precompiles(PyEccBackend())
    G = g1_generator()
    ok, out = pc.call(ECMUL_ADDRESS, G.to_bytes() + to_word(2))
    assert ok and G1Point.from_bytes(out) == g1(2)
    ok, out = pc.call(ECADD_ADDRESS, G.to_bytes() + G.to_bytes())
    assert ok and G1Point.from_bytes(out) == g1(2)
    # short input is zero-padded: identity + identity
    ok, out = pc.call(ECADD_ADDRESS, b"")
    assert ok and out == b"\x00" * 64


def test_precompile_failure_reports_no_success():
    pc = Precompiles(PyEccBackend())
    assert pc.call(ECADD_ADDRESS, G1Point(1, 3).to_bytes()) == (False, b"")
    assert pc.call(ECPAIRING_ADDRESS, b"\x00" * 100) == (False, b"")
    ok, out = pc.call(ECPAIRING_ADDRESS, b"")
    assert ok and out == to_word(1)


# ---------------------------------------------------------------------------
# Generated program: primitive entry points
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def host1() -> ProgramVerifier:
    return ProgramVerifier(generate(make_triple(1).vk, unroll=True))


def test_program_negate_matches_python(host1):
    for P in (g1_generator(), g1(12345), G1Point.identity()):
        assert host1.negate(P) == negate(P)


def test_program_add_and_scalar_mul_match_python(host1):
    assert host1.add(g1(3), g1(4)) == g1(7)
    assert host1.scalar_mul(g1(5), 6) == g1(30)
    assert host1.scalar_mul(g1(5), 0) == G1Point.identity()
    # the scalar is a raw 256-bit word
    assert host1.scalar_mul(g1_generator(), R + 1) == g1_generator()


def test_program_group_failure_maps_to_fatal_error(host1):
    with pytest.raises(FatalGroupOpFailure):
        host1.add(G1Point(1, 3), g1(1))
    with pytest.raises(FatalGroupOpFailure):
        host1.scalar_mul(g1(1), 1 << 256)


def test_unknown_selector_reverts_without_code(host1):
    res = host1.engine.execute(b"\xde\xad\xbe\xef")
    assert res.success is False and res.output == b""


def test_program_reads_its_input_count(host1):
    assert host1.n_public == 1


# ---------------------------------------------------------------------------
# Generated program: verify
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("unroll", [True, False])
def test_count_mismatch_is_cheap(unroll):
    t = make_triple(2)
    cb = CountingBackend()
    host = ProgramVerifier(generate(t.vk, unroll=unroll), backend=cb)
    with pytest.raises(InputCountMismatch) as ei:
        host.verify(t.proof, [1])
    assert ei.value.ctx["expected"] == 2 and ei.value.ctx["got"] == 1
    assert cb.total == 0
    assert host.gas_used < 1000


@pytest.mark.parametrize("unroll", [True, False])
def test_out_of_range_input_reverts_before_any_precompile(unroll):
    t = make_triple(1)
    cb = CountingBackend()
    host = ProgramVerifier(generate(t.vk, unroll=unroll), backend=cb)
    with pytest.raises(PublicInputOutOfRange) as ei:
        host.verify(t.proof, [R])
    assert ei.value.ctx["index"] == 0
    assert cb.total == 0


def test_input_wider_than_a_word_is_rejected_by_the_encoder(host1):
    with pytest.raises(PublicInputOutOfRange):
        host1.encode_verify(make_triple(1).proof, [1 << 256])


def test_calldata_layout(host1):
    t = make_triple(1)
    data = host1.encode_verify(t.proof, list(t.inputs))
    assert len(data) == 4 + 320 + 32
    assert data[:4] == selector("verify(uint256[2],uint256[2][2],uint256[2],uint256[])").to_bytes(4, "big")
    assert data[4 + 0x100 : 4 + 0x120] == to_word(0x120)
    assert data[4 + 0x120 : 4 + 0x140] == to_word(1)
    assert data[4 + 0x140 :] == to_word(t.inputs[0])


def test_invalid_proof_point_maps_to_group_failure():
    t = make_triple(1)
    host = ProgramVerifier(generate(t.vk))
    broken = replace(t.proof, c=G1Point(1, 3))
    with pytest.raises(FatalGroupOpFailure):
        host.verify(broken, list(t.inputs))


@pytest.mark.slow
@pytest.mark.parametrize("unroll", [True, False])
@pytest.mark.parametrize("n", [1, 2, 3])
def test_program_agrees_with_python(n, unroll):
    t = make_triple(n)
    cb = CountingBackend()
    host = ProgramVerifier(generate(t.vk, unroll=unroll), backend=cb)
    assert host.verify(t.proof, list(t.inputs)) is True
    # the loop ran exactly n times: n muls, n accumulations + IC[0]
    assert cb.calls == {"ec_mul": n, "ec_add": n + 1, "multi_pairing": 1}
    bumped = list(t.inputs)
    bumped[-1] += 1
    assert host.verify(t.proof, bumped) is False


@pytest.mark.slow
def test_zero_input_program_accepts():
    t = make_triple(0)
    for unroll in (True, False):
        assert ProgramVerifier(generate(t.vk, unroll=unroll)).verify(t.proof, []) is True


@pytest.mark.slow
def test_unrolled_program_uses_less_gas_than_looped():
    t = make_triple(3)
    unrolled = ProgramVerifier(generate(t.vk, unroll=True))
    looped = ProgramVerifier(generate(t.vk, unroll=False))
    assert unrolled.verify(t.proof, list(t.inputs)) is True
    assert looped.verify(t.proof, list(t.inputs)) is True
    assert unrolled.gas_used < looped.gas_used
    # dominated by the precompiles
    assert unrolled.gas_used > 45000 + 4 * 34000 + 3 * 6000 + 4 * 150
