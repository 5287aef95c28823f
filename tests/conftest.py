"""Refinery test configuration."""

from __future__ import annotations

from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def _clean_state() -> Iterator[None]:
    """Reset config and the proof cache; tests mutate a copy of the default table."""
    from refinery import preservation
    from refinery.engine import clear_cache, reset_config

    reset_config()
    clear_cache()
    saved = preservation._default_table
    if saved is not None:
        preservation._default_table = saved.copy()
    yield
    preservation._default_table = saved
    reset_config()
    clear_cache()
