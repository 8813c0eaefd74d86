"""Shared fixtures; the builders live in `g16huff.tests`."""

from __future__ import annotations

import os

import pytest

from g16huff.config import get_config
from g16huff.tests import CountingBackend, Triple, make_triple
from g16huff.verifiers.pairing_bn254 import PyEccBackend


@pytest.fixture
def triple0() -> Triple:
    return make_triple(0)


@pytest.fixture
def triple1() -> Triple:
    return make_triple(1)


@pytest.fixture
def triple2() -> Triple:
    return make_triple(2)


@pytest.fixture
def triple3() -> Triple:
    return make_triple(3)


@pytest.fixture
def backend() -> PyEccBackend:
    return PyEccBackend()


@pytest.fixture
def counting_backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def fresh_config(monkeypatch):
    """Clear G16HUFF_* env and the cached config around a test."""
    for k in list(os.environ):
        if k.startswith("G16HUFF_") and k != "G16HUFF_TEST_LOG":
            monkeypatch.delenv(k, raising=False)
    get_config.cache_clear()
    yield monkeypatch
    get_config.cache_clear()
