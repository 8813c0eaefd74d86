"""
g16huff.adapters.snarkjs_loader
===============================

Load Groth16 (BN254) verification keys, proofs and public inputs from JSON
into the typed model in `g16huff.types`.

Two input shapes are accepted for each artifact.

SnarkJS (verification_key.json / proof.json):
{
  "protocol": "groth16",
  "curve": "bn128",
  "vk_alpha_1": [ "x", "y", "1" ],
  "vk_beta_2":  [[ "x0","x1" ], [ "y0","y1" ], [ "1","0" ]],
  "vk_gamma_2": ...,
  "vk_delta_2": ...,
  "IC": [ [ "x", "y", "1" ], ... ]
}
{
  "pi_a": [...], "pi_b": [[...],[...],[...]], "pi_c": [...],
  "publicSignals": [ "123", "0x45" ]      # optional
}
Some tools wrap the proof as { "proof": {...}, "publicSignals": [...] }.

Native (what `vk_to_json` / `proof_to_json` write):
{ "alpha": [x, y], "beta": [[x0, x1], [y0, y1]], "gamma": ..., "delta": ...,
  "ic": [[x, y], ...] }
{ "a": [x, y], "b": [[x0, x1], [y0, y1]], "c": [x, y] }

G2 coordinates are always listed real limb first (x = x0 + x1·i), as SnarkJS
does; the byte encoding (imaginary limb first) is applied later by the packer.

Numbers may be ints, decimal or hex strings, or JS BigInt strings ("123n").
Projective triples are accepted when z == 1; z == 0 maps to the identity.

Any schema or parse failure raises `MalformedVerificationKey` (keys) or
`MalformedProof` (proofs and public inputs) naming the offending path.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, Dict, List, Mapping, Sequence, Type, Union

from ..errors import G16Error, MalformedProof, MalformedVerificationKey
from ..types import G1Point, G2Point, Proof, VerificationKey
from ..verifiers.field import is_base_element

JsonLike = Union[str, bytes, os.PathLike, Mapping[str, Any]]

_INT_RE = re.compile(r"^\s*([+-]?(?:0x[0-9a-fA-F]+|\d+))n?\s*$")


# -----------------------------------------------------------------------------
# I/O helpers
# -----------------------------------------------------------------------------

def load_json(source: JsonLike, *, error: Type[G16Error] = MalformedVerificationKey) -> Any:
    """
    Load JSON from:
      - dict-like: shallow-copied into a new dict
      - bytes: decoded as UTF-8 JSON text
      - path-like or string path of an existing file
      - string containing JSON text
    """
    if isinstance(source, Mapping):
        return dict(source)
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return json.loads(bytes(source).decode("utf-8"))
        s = os.fspath(source)
        if os.path.isfile(s):
            with open(s, "r", encoding="utf-8") as f:
                return json.load(f)
        return json.loads(s)
    except (OSError, ValueError, TypeError) as e:
        raise error(f"could not load JSON: {e}", cause=e) from e


def _to_int(x: Any, path: str, error: Type[G16Error]) -> int:
    if isinstance(x, bool):
        raise error(f"expected a number, got {x!r}", path=path)
    if isinstance(x, int):
        return x
    if isinstance(x, str):
        m = _INT_RE.match(x)
        if m:
            return int(m.group(1), 0)
    raise error(f"expected a number, got {x!r}", path=path)


def _coord(x: Any, path: str, error: Type[G16Error]) -> int:
    v = _to_int(x, path, error)
    if not is_base_element(v):
        raise error("coordinate is not a canonical base-field element", path=path)
    return v


# -----------------------------------------------------------------------------
# Point parsing
# -----------------------------------------------------------------------------

def _g1(pt: Any, path: str, error: Type[G16Error]) -> G1Point:
    if not isinstance(pt, (list, tuple)) or len(pt) not in (2, 3):
        raise error("G1 point must be [x, y] or [x, y, z]", path=path)
    if len(pt) == 3:
        z = _to_int(pt[2], f"{path}[2]", error)
        if z == 0:
            return G1Point.identity()
        if z != 1:
            raise error("projective G1 point must be normalized (z == 1)", path=path)
    return G1Point(_coord(pt[0], f"{path}[0]", error), _coord(pt[1], f"{path}[1]", error))


def _pair(v: Any, path: str, error: Type[G16Error]) -> List[int]:
    if not isinstance(v, (list, tuple)) or len(v) != 2:
        raise error("expected a pair [c0, c1]", path=path)
    return [_to_int(v[0], f"{path}[0]", error), _to_int(v[1], f"{path}[1]", error)]


def _g2(pt: Any, path: str, error: Type[G16Error]) -> G2Point:
    if not isinstance(pt, (list, tuple)) or len(pt) not in (2, 3):
        raise error("G2 point must be [[x0, x1], [y0, y1]] (optionally with z)", path=path)
    if len(pt) == 3:
        z = _pair(pt[2], f"{path}[2]", error)
        if z == [0, 0]:
            return G2Point.identity()
        if z != [1, 0]:
            raise error("projective G2 point must be normalized (z == 1)", path=path)
    x = _pair(pt[0], f"{path}[0]", error)
    y = _pair(pt[1], f"{path}[1]", error)
    x0, x1 = (_coord(c, f"{path}[0][{i}]", error) for i, c in enumerate(x))
    y0, y1 = (_coord(c, f"{path}[1][{i}]", error) for i, c in enumerate(y))
    return G2Point(x0, x1, y0, y1)


# -----------------------------------------------------------------------------
# Verification keys
# -----------------------------------------------------------------------------

_SNARKJS_VK = ("vk_alpha_1", "vk_beta_2", "vk_gamma_2", "vk_delta_2", "IC")
_NATIVE_VK = ("alpha", "beta", "gamma", "delta", "ic")


def is_snarkjs_vk(obj: Mapping[str, Any]) -> bool:
    return all(k in obj for k in _SNARKJS_VK)


def vk_from_obj(obj: Any) -> VerificationKey:
    E = MalformedVerificationKey
    if not isinstance(obj, Mapping):
        raise E("verification key must be a JSON object")
    if is_snarkjs_vk(obj):
        names = _SNARKJS_VK
        protocol = str(obj.get("protocol", "groth16")).lower()
        curve = str(obj.get("curve", "bn128")).lower()
        if protocol != "groth16":
            raise E(f"unsupported protocol {protocol!r}", path="protocol")
        if curve not in ("bn128", "bn254", "alt_bn128"):
            raise E(f"unsupported curve {curve!r}", path="curve")
    elif all(k in obj for k in _NATIVE_VK):
        names = _NATIVE_VK
    else:
        missing = [k for k in _NATIVE_VK if k not in obj]
        raise E(f"verification key is missing fields: {', '.join(missing)}")

    alpha_k, beta_k, gamma_k, delta_k, ic_k = names
    ic = obj[ic_k]
    if not isinstance(ic, (list, tuple)) or len(ic) == 0:
        raise E("IC must be a non-empty list of G1 points", path=ic_k)
    return VerificationKey(
        alpha=_g1(obj[alpha_k], alpha_k, E),
        beta=_g2(obj[beta_k], beta_k, E),
        gamma=_g2(obj[gamma_k], gamma_k, E),
        delta=_g2(obj[delta_k], delta_k, E),
        ic=tuple(_g1(p, f"{ic_k}[{i}]", E) for i, p in enumerate(ic)),
    )


def load_vk(source: JsonLike) -> VerificationKey:
    """Load a verification key (SnarkJS or native JSON)."""
    return vk_from_obj(load_json(source, error=MalformedVerificationKey))


# -----------------------------------------------------------------------------
# Proofs and public inputs
# -----------------------------------------------------------------------------

def _unwrap_proof(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    inner = obj.get("proof")
    return inner if isinstance(inner, Mapping) else obj


def proof_from_obj(obj: Any) -> Proof:
    E = MalformedProof
    if not isinstance(obj, Mapping):
        raise E("proof must be a JSON object")
    p = _unwrap_proof(obj)
    if all(k in p for k in ("pi_a", "pi_b", "pi_c")):
        a_k, b_k, c_k = "pi_a", "pi_b", "pi_c"
    elif all(k in p for k in ("a", "b", "c")):
        a_k, b_k, c_k = "a", "b", "c"
    else:
        raise E("proof is missing pi_a/pi_b/pi_c")
    return Proof(a=_g1(p[a_k], a_k, E), b=_g2(p[b_k], b_k, E), c=_g1(p[c_k], c_k, E))


def load_proof(source: JsonLike) -> Proof:
    """Load a proof (SnarkJS, wrapped SnarkJS bundle or native JSON)."""
    return proof_from_obj(load_json(source, error=MalformedProof))


def public_from_obj(obj: Any) -> List[int]:
    """
    Accept a bare list, {"publicSignals": [...]}, or {"public_inputs": [...]}.
    Values are not range-checked here; the verifier does that.
    """
    E = MalformedProof
    if isinstance(obj, Mapping):
        for key in ("publicSignals", "public_inputs", "inputs"):
            if key in obj:
                obj = obj[key]
                break
        else:
            raise E("no publicSignals found")
    if not isinstance(obj, (list, tuple)):
        raise E("public inputs must be a list", path="publicSignals")
    return [_to_int(v, f"publicSignals[{i}]", E) for i, v in enumerate(obj)]


def load_public(source: JsonLike) -> List[int]:
    return public_from_obj(load_json(source, error=MalformedProof))


# -----------------------------------------------------------------------------
# Writers (native shape, decimal strings)
# -----------------------------------------------------------------------------

def _g1_json(p: G1Point) -> List[str]:
    return [str(p.x), str(p.y)]


def _g2_json(p: G2Point) -> List[List[str]]:
    return [[str(p.x0), str(p.x1)], [str(p.y0), str(p.y1)]]


def vk_to_json(vk: VerificationKey) -> Dict[str, Any]:
    return {
        "protocol": "groth16",
        "curve": "bn128",
        "alpha": _g1_json(vk.alpha),
        "beta": _g2_json(vk.beta),
        "gamma": _g2_json(vk.gamma),
        "delta": _g2_json(vk.delta),
        "ic": [_g1_json(p) for p in vk.ic],
    }


def proof_to_json(proof: Proof, public_inputs: Sequence[int] = ()) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "a": _g1_json(proof.a),
        "b": _g2_json(proof.b),
        "c": _g1_json(proof.c),
    }
    if public_inputs:
        out["publicSignals"] = [str(v) for v in public_inputs]
    return out


__all__ = [
    "load_json",
    "is_snarkjs_vk",
    "vk_from_obj",
    "load_vk",
    "proof_from_obj",
    "load_proof",
    "public_from_obj",
    "load_public",
    "vk_to_json",
    "proof_to_json",
]
