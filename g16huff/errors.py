"""
Typed exceptions for g16huff.

Design goals
- Structured: machine-readable code + human message + contextual fields.
- Deterministic: the same invalid input always produces the same error
  (same class, same code, same ctx).
- Composable: wrap lower-level exceptions with preserved causes.

Verification-time errors
  - InputCountMismatch       public-input count does not match the key
  - PublicInputOutOfRange    an input is >= the scalar-field modulus
  - FatalGroupOpFailure      a group/pairing primitive rejected its input

Generation-time errors
  - CodegenIncompleteSubstitution   template placeholder left unresolved
  - TemplateError                   structurally invalid template
  - MalformedVerificationKey        key description fails schema/parse checks
  - MalformedProof                  proof description fails schema/parse checks

Execution of generated programs
  - MachineError             the metered machine faulted (OOG, bad jump, ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional


class G16ErrorCode(str, Enum):
    """Canonical error codes."""

    UNKNOWN = "UNKNOWN"

    # Verification
    INPUT_COUNT_MISMATCH = "INPUT_COUNT_MISMATCH"
    PUBLIC_INPUT_OUT_OF_RANGE = "PUBLIC_INPUT_OUT_OF_RANGE"
    GROUP_OP_FAILURE = "GROUP_OP_FAILURE"

    # Parsing
    MALFORMED_VK = "MALFORMED_VK"
    MALFORMED_PROOF = "MALFORMED_PROOF"

    # Code generation
    INCOMPLETE_SUBSTITUTION = "INCOMPLETE_SUBSTITUTION"
    TEMPLATE = "TEMPLATE"

    # Metered machine
    MACHINE = "MACHINE"


@dataclass(eq=False)
class G16Error(Exception):
    """
    Base structured error.

    Fields:
      code:  stable machine code (G16ErrorCode)
      msg:   human-readable summary
      ctx:   small dict of contextual fields (ints, names, hex strings)
      cause: optional underlying exception (not serialized)
    """

    code: G16ErrorCode = G16ErrorCode.UNKNOWN
    msg: str = "g16huff error"
    ctx: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.msg}"]
        if self.ctx:
            parts.append(f"ctx={self.ctx}")
        if self.cause:
            parts.append(f"cause={self.cause!r}")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "msg": self.msg, "ctx": dict(self.ctx)}


def _merge(base: Dict[str, Any], extra: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if extra:
        base.update(extra)
    return base


class InputCountMismatch(G16Error):
    """`len(public_inputs) + 1 != len(vk.ic)`; raised before any group arithmetic."""

    def __init__(
        self,
        *,
        expected: int,
        got: int,
        msg: Optional[str] = None,
        ctx: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            code=G16ErrorCode.INPUT_COUNT_MISMATCH,
            msg=msg or f"expected {expected} public inputs, got {got}",
            ctx=_merge({"expected": expected, "got": got}, ctx),
        )


class PublicInputOutOfRange(G16Error):
    """A public input is not a canonical scalar-field element."""

    def __init__(self, *, index: int, value: Optional[int] = None) -> None:
        ctx: Dict[str, Any] = {"index": index}
        if value is not None:
            ctx["value"] = hex(value) if value >= 0 else str(value)
        super().__init__(
            code=G16ErrorCode.PUBLIC_INPUT_OUT_OF_RANGE,
            msg=f"public input {index} is outside the scalar field",
            ctx=ctx,
        )


class FatalGroupOpFailure(G16Error):
    """
    A group or pairing primitive rejected its input (point not on curve,
    coordinate not canonical, malformed encoding). Never retried.
    """

    def __init__(
        self,
        op: str,
        reason: str,
        *,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            code=G16ErrorCode.GROUP_OP_FAILURE,
            msg=f"{op}: {reason}",
            ctx=_merge({"op": op}, ctx),
            cause=cause,
        )


class CodegenIncompleteSubstitution(G16Error):
    """Placeholders remain in a program after the specialization pass."""

    def __init__(self, names: Iterable[str]) -> None:
        unresolved = sorted(set(names))
        super().__init__(
            code=G16ErrorCode.INCOMPLETE_SUBSTITUTION,
            msg=f"{len(unresolved)} placeholder(s) left unresolved: {', '.join(unresolved)}",
            ctx={"unresolved": unresolved},
        )

    @property
    def unresolved(self) -> list[str]:
        return list(self.ctx["unresolved"])


class TemplateError(G16Error):
    def __init__(self, msg: str, **ctx: Any) -> None:
        super().__init__(code=G16ErrorCode.TEMPLATE, msg=msg, ctx=dict(ctx))


class MalformedVerificationKey(G16Error):
    """Verification-key description fails schema/parse validation."""

    def __init__(
        self,
        msg: str = "malformed verification key",
        *,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            code=G16ErrorCode.MALFORMED_VK,
            msg=msg,
            ctx={"path": path} if path is not None else {},
            cause=cause,
        )


class MalformedProof(G16Error):
    """Proof (or public-input) description fails schema/parse validation."""

    def __init__(
        self,
        msg: str = "malformed proof",
        *,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            code=G16ErrorCode.MALFORMED_PROOF,
            msg=msg,
            ctx={"path": path} if path is not None else {},
            cause=cause,
        )


class MachineError(G16Error):
    """The metered machine faulted while executing a generated program."""

    def __init__(self, msg: str, **ctx: Any) -> None:
        super().__init__(code=G16ErrorCode.MACHINE, msg=msg, ctx=dict(ctx))


# Verification-time errors surfaced as a definite failure by the facades.
VERIFICATION_ERRORS = (InputCountMismatch, PublicInputOutOfRange, FatalGroupOpFailure)


__all__ = [
    "G16ErrorCode",
    "G16Error",
    "InputCountMismatch",
    "PublicInputOutOfRange",
    "FatalGroupOpFailure",
    "CodegenIncompleteSubstitution",
    "TemplateError",
    "MalformedVerificationKey",
    "MalformedProof",
    "MachineError",
    "VERIFICATION_ERRORS",
]
