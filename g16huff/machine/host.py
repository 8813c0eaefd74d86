"""
g16huff.machine.host — call a generated verifier program like a contract.

`ProgramVerifier` ABI-encodes calls to the program's four entry points,
runs them on the metered `Engine` and maps the program's revert codes back
onto the error taxonomy:

    0x01  InputCountMismatch      calldata shape / input count
    0x02  PublicInputOutOfRange   some input >= r
    0x03  FatalGroupOpFailure     a precompile rejected its input

The gas used by the last call is kept in `last_result`.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from ..codegen.ir import Literal, Program
from ..codegen.specializer import GeneratedVerifier
from ..codegen.template import FAIL_GROUP_OP, FAIL_INPUT_COUNT, FAIL_INPUT_RANGE
from ..errors import (FatalGroupOpFailure, InputCountMismatch, MachineError,
                      PublicInputOutOfRange)
from ..types import G1Point, Proof
from ..verifiers.field import WORD_SIZE, is_scalar_element, join_words, to_word
from ..verifiers.primitives import GroupBackend
from .engine import Engine, ExecResult, link, selector

log = logging.getLogger(__name__)

_WORD_LIMIT = 1 << 256


def _selector_bytes(program: Program, name: str) -> bytes:
    return selector(program.function(name).signature).to_bytes(4, "big")


class ProgramVerifier:
    """Host-side adapter around one generated program."""

    def __init__(
        self,
        target: Union[GeneratedVerifier, Program],
        *,
        backend: Optional[GroupBackend] = None,
        gas_limit: Optional[int] = None,
    ) -> None:
        program = target.program if isinstance(target, GeneratedVerifier) else target
        self.program = program
        self.engine = Engine(link(program), backend=backend, gas_limit=gas_limit)
        n = program.constant("N_INPUTS").value
        if not isinstance(n, Literal):
            raise MachineError("program is not specialized", constant="N_INPUTS")
        self.n_public = n.value
        self.last_result: Optional[ExecResult] = None

    # ---------- calldata ---------- #

    def encode_verify(self, proof: Proof, public_inputs: Sequence[int]) -> bytes:
        for i, v in enumerate(public_inputs):
            if not isinstance(v, int) or isinstance(v, bool) or not 0 <= v < _WORD_LIMIT:
                raise PublicInputOutOfRange(index=i, value=v if isinstance(v, int) else None)
        head = proof.a.to_bytes() + proof.b.to_bytes() + proof.c.to_bytes()
        return (
            _selector_bytes(self.program, "verify")
            + head
            + to_word(len(head) + WORD_SIZE)
            + to_word(len(public_inputs))
            + join_words(public_inputs)
        )

    # ---------- calls ---------- #

    def _call(self, calldata: bytes) -> ExecResult:
        res = self.engine.execute(calldata)
        self.last_result = res
        log.debug("call -> success=%s gas=%d steps=%d", res.success, res.gas_used, res.steps)
        return res

    def _raise_for(self, res: ExecResult, op: str, public_inputs: Sequence[int] = ()) -> None:
        if len(res.output) != WORD_SIZE:
            raise MachineError("call reverted without a status code", op=op)
        code = int.from_bytes(res.output, "big")
        if code == FAIL_INPUT_COUNT:
            raise InputCountMismatch(
                expected=self.n_public if op == "verify" else 1,
                got=len(public_inputs) if op == "verify" else 0,
                msg=f"{op}: calldata does not match the expected shape",
            )
        if code == FAIL_INPUT_RANGE:
            index = next((i for i, v in enumerate(public_inputs) if not is_scalar_element(v)), -1)
            raise PublicInputOutOfRange(index=index)
        if code == FAIL_GROUP_OP:
            raise FatalGroupOpFailure(op, "precompile rejected its input")
        raise MachineError("unknown status code", op=op, code=code)

    def verify(self, proof: Proof, public_inputs: Sequence[int]) -> bool:
        res = self._call(self.encode_verify(proof, public_inputs))
        if not res.success:
            self._raise_for(res, "verify", public_inputs)
        return int.from_bytes(res.output, "big") == 1

    def _point_call(self, fn: str, payload: bytes) -> G1Point:
        res = self._call(_selector_bytes(self.program, fn) + payload)
        if not res.success:
            self._raise_for(res, fn)
        return G1Point.from_bytes(res.output)

    def negate(self, P: G1Point) -> G1Point:
        return self._point_call("negate", P.to_bytes())

    def add(self, P: G1Point, Q: G1Point) -> G1Point:
        return self._point_call("add", P.to_bytes() + Q.to_bytes())

    def scalar_mul(self, P: G1Point, s: int) -> G1Point:
        if not 0 <= s < _WORD_LIMIT:
            raise FatalGroupOpFailure("scalarMul", "scalar is not a 256-bit word")
        return self._point_call("scalarMul", P.to_bytes() + to_word(s))

    @property
    def gas_used(self) -> Optional[int]:
        return None if self.last_result is None else self.last_result.gas_used


__all__ = ["ProgramVerifier"]
