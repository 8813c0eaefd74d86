from __future__ import annotations

import pytest

from g16huff.codegen.layout import REGION_NAMES, layout
from g16huff.codegen.packer import SECTION_OFFSETS, pack, packed_size, unpack
from g16huff.codegen.specializer import generate
from g16huff.errors import MalformedVerificationKey
from g16huff.tests import make_key, make_triple
from g16huff.types import G1Point, G2Point
from g16huff.verifiers.field import Q

# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 2, 5, 50])
def test_regions_are_contiguous_and_disjoint(n):
    lay = layout(n)
    assert tuple(r.name for r in lay.regions) == REGION_NAMES
    assert lay.regions[0].offset == 0
    for prev, cur in zip(lay.regions, lay.regions[1:]):
        assert cur.offset == prev.end
    spans = sorted((r.offset, r.end) for r in lay.regions)
    for (_, e0), (s1, _) in zip(spans, spans[1:]):
        assert e0 <= s1
    assert lay.total_size == 1376 + 96 * n


@pytest.mark.parametrize("n", [0, 1, 2, 5, 50])
def test_region_sizes(n):
    lay = layout(n)
    assert lay.region("scratch").size == 160
    assert lay.region("accumulator").size == 64
    assert lay.region("ic_table").size == 64 * (n + 1)
    assert lay.region("pairing").size == 768
    assert lay.region("staging").size == 320 + 32 * n
    assert lay.calldata_size == 4 + 320 + 32 * n


def test_layout_for_one_input_has_expected_offsets():
    assert layout(1).as_dict() == {
        "scratch": [0, 160],
        "accumulator": [160, 64],
        "ic_table": [224, 128],
        "pairing": [352, 768],
        "staging": [1120, 352],
    }


def test_symbols_are_derived_from_regions():
    lay = layout(2)
    sym = lay.symbols()
    staging = lay.region("staging").offset
    pairing = lay.region("pairing").offset
    assert sym["N_INPUTS"] == 2
    assert sym["STAGING_A"] == staging
    assert sym["STAGING_B"] == staging + 0x40
    assert sym["STAGING_C"] == staging + 0xC0
    assert sym["STAGING_OFFSET_WORD"] == staging + 0x100
    assert sym["STAGING_LENGTH"] == staging + 0x120
    assert sym["STAGING_INPUTS"] == staging + 0x140
    assert sym["ABI_ARRAY_OFFSET"] == 0x120  # points at the length word
    assert sym["PAIRING_PAIR_2_G1"] == pairing + 2 * 192
    assert sym["PAIRING_PAIR_2_G2"] == pairing + 2 * 192 + 64
    assert sym["ACC"] == sym["ADD_IN"] + 0x40  # product ‖ acc is the ecAdd input
    assert sym["KEY_SIZE"] == packed_size(2)
    # every symbol is a non-negative int that fits in memory
    assert all(0 <= v <= lay.total_size or k.endswith("SIZE") for k, v in sym.items())


def test_layout_is_pure():
    assert layout(3) == layout(3)
    assert layout(3).symbols() == layout(3).symbols()


@pytest.mark.parametrize("bad", [-1, -50, 1.5, True, "2"])
def test_invalid_counts_raise(bad):
    with pytest.raises(ValueError):
        layout(bad)


def test_unknown_region():
    with pytest.raises(KeyError):
        layout(0).region("heap")


# ---------------------------------------------------------------------------
# Packer
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 2, 3])
def test_packed_length(n):
    vk = make_key(n)
    packed = pack(vk)
    # alpha (64) + beta, gamma, delta (128 each) + IC
    assert len(packed) == 448 + 64 * (n + 1) == packed_size(n)
    assert packed.n_public == n


def test_sections_land_at_their_offsets(triple2):
    vk = triple2.vk
    data = pack(vk).data
    off = SECTION_OFFSETS
    assert off == {"alpha": 0, "beta": 64, "gamma": 192, "delta": 320, "ic": 448}
    assert data[off["alpha"] : off["beta"]] == vk.alpha.to_bytes()
    assert data[off["beta"] : off["gamma"]] == vk.beta.to_bytes()
    assert data[off["gamma"] : off["delta"]] == vk.gamma.to_bytes()
    assert data[off["delta"] : off["ic"]] == vk.delta.to_bytes()
    assert data[off["ic"] + 64 : off["ic"] + 128] == vk.ic[1].to_bytes()


def test_g2_uses_imaginary_limb_first(triple1):
    beta = triple1.vk.beta
    data = pack(triple1.vk).data
    assert int.from_bytes(data[64:96], "big") == beta.x1
    assert int.from_bytes(data[96:128], "big") == beta.x0
    assert int.from_bytes(data[128:160], "big") == beta.y1
    assert int.from_bytes(data[160:192], "big") == beta.y0


def test_unpack_inverts_pack():
    vk = make_triple(3).vk
    assert unpack(pack(vk).data) == vk


def test_packed_key_helpers(triple1):
    packed = pack(triple1.vk)
    assert packed.hex() == packed.data.hex()
    assert len(packed.digest()) == 64
    assert packed.offsets["ic"] == 448


@pytest.mark.parametrize("size", [0, 447, 448, 512 + 1])
def test_unpack_rejects_bad_length(size):
    with pytest.raises(MalformedVerificationKey):
        unpack(b"\x00" * size)


def test_unpack_rejects_non_canonical_coordinate(triple1):
    data = bytearray(pack(triple1.vk).data)
    data[0:32] = Q.to_bytes(32, "big")
    with pytest.raises(MalformedVerificationKey) as ei:
        unpack(bytes(data))
    assert ei.value.ctx["path"] == "alpha"


@pytest.mark.parametrize("bad", [Q, Q + 1, 1 << 256])
def test_pack_rejects_non_canonical_coordinate(bad):
    from dataclasses import replace

    vk = make_key(1)
    with pytest.raises(MalformedVerificationKey) as ei:
        pack(replace(vk, alpha=G1Point(bad, 2)))
    assert ei.value.ctx["path"] == "alpha"

    G2 = vk.delta
    with pytest.raises(MalformedVerificationKey) as ei:
        pack(replace(vk, delta=G2Point(G2.x0, bad, G2.y0, G2.y1)))
    assert ei.value.ctx["path"] == "delta"

    with pytest.raises(MalformedVerificationKey) as ei:
        pack(replace(vk, ic=(vk.ic[0], G1Point(1, bad))))
    assert ei.value.ctx["path"] == "ic[1]"


def test_generate_rejects_non_canonical_key():
    from dataclasses import replace

    vk = replace(make_key(1), alpha=G1Point(Q + 1, 2))
    with pytest.raises(MalformedVerificationKey):
        generate(vk)


def test_empty_ic_is_malformed(triple1):
    from dataclasses import replace

    with pytest.raises(MalformedVerificationKey):
        replace(triple1.vk, ic=())


def test_identity_points_pack_as_zero_words():
    assert G1Point.identity().to_bytes() == b"\x00" * 64
