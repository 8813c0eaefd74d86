"""
Verification algorithm: scenarios, cheap rejection, determinism, soundness.

Pairing checks in pure Python take seconds; tests that reach the pairing
carry the `slow` marker.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from g16huff.errors import (FatalGroupOpFailure, G16ErrorCode, InputCountMismatch,
                            PublicInputOutOfRange)
from g16huff.tests import CountingBackend, configure_test_logging, make_triple
from g16huff.types import G1Point, G2Point
from g16huff.verifiers.field import R
from g16huff.verifiers.groth16_bn254 import (GenericVerifier, SpecializedVerifier,
                                             VerifierConfig, compute_vk_x, verify_groth16,
                                             verify_with_config)

configure_test_logging()


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@pytest.mark.slow
def test_scenario_a_single_input_accepts(triple1):
    assert GenericVerifier().verify(triple1.vk, triple1.proof, list(triple1.inputs)) is True


@pytest.mark.slow
def test_scenario_b_incremented_input_rejects(triple1):
    bumped = [triple1.inputs[0] + 1]
    assert GenericVerifier().verify(triple1.vk, triple1.proof, bumped) is False


@pytest.mark.slow
def test_scenario_c_two_inputs_accepts(triple2):
    assert GenericVerifier().verify(triple2.vk, triple2.proof, list(triple2.inputs)) is True


def test_scenario_d_input_equal_to_r_is_rejected_before_any_primitive(triple1, counting_backend):
    with pytest.raises(PublicInputOutOfRange) as ei:
        GenericVerifier(counting_backend).verify(triple1.vk, triple1.proof, [R])
    assert ei.value.ctx["index"] == 0
    assert counting_backend.total == 0


@pytest.mark.parametrize("delta", [-1, +1])
def test_scenario_e_count_off_by_one_is_rejected_before_any_primitive(triple1, counting_backend, delta):
    inputs = list(triple1.inputs) + [7] if delta > 0 else []
    with pytest.raises(InputCountMismatch) as ei:
        GenericVerifier(counting_backend).verify(triple1.vk, triple1.proof, inputs)
    assert ei.value.ctx == {"expected": 1, "got": len(inputs)}
    assert counting_backend.total == 0


# ---------------------------------------------------------------------------
# Algorithm details
# ---------------------------------------------------------------------------


def test_negative_input_is_out_of_range(triple1, counting_backend):
    with pytest.raises(PublicInputOutOfRange):
        GenericVerifier(counting_backend).verify(triple1.vk, triple1.proof, [-1])
    assert counting_backend.total == 0


def test_range_check_is_interleaved_with_accumulation(triple2, counting_backend):
    # input 0 is fine, input 1 is not: exactly one mul/add pair ran.
    with pytest.raises(PublicInputOutOfRange) as ei:
        GenericVerifier(counting_backend).verify(triple2.vk, triple2.proof, [1, R + 5])
    assert ei.value.ctx["index"] == 1
    assert counting_backend.calls == {"ec_mul": 1, "ec_add": 1}


def test_vk_x_matches_direct_sum(triple2, backend):
    from g16huff.tests import g1, ic_exponents

    cfg = VerifierConfig.from_key(triple2.vk)
    ks = ic_exponents(2)
    expected = g1(ks[0] + triple2.inputs[0] * ks[1] + triple2.inputs[1] * ks[2])
    assert compute_vk_x(cfg, list(triple2.inputs), backend) == expected


def test_vk_x_for_zero_inputs_is_ic0(triple0, backend):
    cfg = VerifierConfig.from_key(triple0.vk)
    assert compute_vk_x(cfg, [], backend) == triple0.vk.ic[0]


@pytest.mark.slow
def test_primitive_call_sequence_is_fixed(triple3):
    cb = CountingBackend()
    assert GenericVerifier(cb).verify(triple3.vk, triple3.proof, list(triple3.inputs)) is True
    # n muls, n accumulations + the IC[0] add, one pairing
    assert cb.calls == {"ec_mul": 3, "ec_add": 4, "multi_pairing": 1}


@pytest.mark.slow
def test_zero_input_key_accepts(triple0):
    assert GenericVerifier().verify(triple0.vk, triple0.proof, []) is True


# ---------------------------------------------------------------------------
# Front ends
# ---------------------------------------------------------------------------


def test_config_is_built_once_and_immutable(triple1):
    cfg = VerifierConfig.from_key(triple1.vk)
    assert cfg.n_public == 1
    assert len(cfg.packed_key) == 448 + 64 * 2
    with pytest.raises(Exception):
        cfg.n_public = 2  # type: ignore[misc]


@pytest.mark.slow
def test_specialized_and_generic_agree(triple2):
    spec = SpecializedVerifier(VerifierConfig.from_key(triple2.vk))
    gen = GenericVerifier()
    good = list(triple2.inputs)
    bad = [good[0], good[1] + 1]
    for inputs in (good, bad):
        assert spec.verify(triple2.proof, inputs) == gen.verify(triple2.vk, triple2.proof, inputs)


def test_specialized_front_end_rejects_wrong_count(triple2, counting_backend):
    spec = SpecializedVerifier(VerifierConfig.from_key(triple2.vk), counting_backend)
    assert spec.n_public == 2
    with pytest.raises(InputCountMismatch):
        spec.verify(triple2.proof, [1])
    assert counting_backend.total == 0


# ---------------------------------------------------------------------------
# Facade, determinism, soundness
# ---------------------------------------------------------------------------


def test_facade_reports_codes(triple1):
    res = verify_groth16(triple1.vk, triple1.proof, [])
    assert not res
    assert res.code is G16ErrorCode.INPUT_COUNT_MISMATCH
    res = verify_groth16(triple1.vk, triple1.proof, [R])
    assert res.ok is False and res.code is G16ErrorCode.PUBLIC_INPUT_OUT_OF_RANGE


def test_facade_turns_group_failure_into_false(triple1):
    broken = replace(triple1.proof, c=G1Point(1, 3))
    res = verify_groth16(triple1.vk, broken, list(triple1.inputs))
    assert res.ok is False
    assert res.code is G16ErrorCode.GROUP_OP_FAILURE


def test_core_propagates_group_failure(triple1, backend):
    broken = replace(triple1.proof, c=G1Point(1, 3))
    with pytest.raises(FatalGroupOpFailure):
        verify_with_config(VerifierConfig.from_key(triple1.vk), broken, list(triple1.inputs), backend)


@pytest.mark.slow
def test_verify_is_deterministic(triple1):
    bumped = [triple1.inputs[0] + 1]
    for inputs in (list(triple1.inputs), bumped):
        first = verify_groth16(triple1.vk, triple1.proof, inputs)
        second = verify_groth16(triple1.vk, triple1.proof, inputs)
        assert first == second
    assert verify_groth16(triple1.vk, triple1.proof, list(triple1.inputs)).ok is True


def _flip_g1(p: G1Point, coord: str, bit: int) -> G1Point:
    return replace(p, **{coord: getattr(p, coord) ^ (1 << bit)})


def _flip_g2(p: G2Point, coord: str, bit: int) -> G2Point:
    return replace(p, **{coord: getattr(p, coord) ^ (1 << bit)})


@pytest.mark.parametrize("coord", ["x", "y"])
@pytest.mark.parametrize("bit", [0, 77, 253])
def test_flipping_a_bit_of_a_rejects(coord, bit):
    t = make_triple(1)
    proof = replace(t.proof, a=_flip_g1(t.proof.a, coord, bit))
    assert verify_groth16(t.vk, proof, list(t.inputs)).ok is False


@pytest.mark.parametrize("coord", ["x", "y"])
@pytest.mark.parametrize("bit", [0, 200])
def test_flipping_a_bit_of_c_rejects(coord, bit):
    t = make_triple(1)
    proof = replace(t.proof, c=_flip_g1(t.proof.c, coord, bit))
    assert verify_groth16(t.vk, proof, list(t.inputs)).ok is False


@pytest.mark.parametrize("coord", ["x0", "x1", "y0", "y1"])
def test_flipping_a_bit_of_b_rejects(coord):
    t = make_triple(1)
    proof = replace(t.proof, b=_flip_g2(t.proof.b, coord, 3))
    assert verify_groth16(t.vk, proof, list(t.inputs)).ok is False


@pytest.mark.slow
@pytest.mark.parametrize("bit", [0, 5, 250])
def test_flipping_a_bit_of_an_input_rejects(bit):
    t = make_triple(2)
    inputs = list(t.inputs)
    inputs[1] ^= 1 << bit
    assert verify_groth16(t.vk, t.proof, inputs).ok is False
