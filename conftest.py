import os

import pytest


def pytest_configure(config):
    # Register the markers used across the suite without requiring external plugins.
    config.addinivalue_line(
        "markers", "slow: runs a full pure-Python pairing check (seconds per test)"
    )


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(config, items):
    """
    Skip pairing-heavy tests when G16HUFF_SKIP_SLOW is set.

    Every full verification runs four pairings in pure Python; a quick
    local loop over the bookkeeping (layout, packer, specializer, machine
    faults, loaders) does not need them.
    """
    if os.getenv("G16HUFF_SKIP_SLOW", "").strip().lower() not in {"1", "true", "yes", "on"}:
        return
    skip = pytest.mark.skip(reason="slow test skipped (G16HUFF_SKIP_SLOW)")
    for item in items:
        if item.get_closest_marker("slow") is not None:
            item.add_marker(skip)
