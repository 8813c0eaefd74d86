"""Loaders for verification keys, proofs and public inputs."""

from .snarkjs_loader import (load_proof, load_public, load_vk, proof_to_json,
                             vk_to_json)

__all__ = ["load_vk", "load_proof", "load_public", "vk_to_json", "proof_to_json"]
