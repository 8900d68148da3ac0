"""Unit tests for the lightweight Result utilities."""

from __future__ import annotations

import pytest

from richreply.core.result import Err, Ok, Result, err, ok


def test_ok_map_keeps_value_typed() -> None:
    """`Ok` should map and keep values typed."""
    r: Result[int, str] = ok(10)
    r2 = r.map(lambda x: x + 5)
    assert r2.is_ok() and r2.unwrap() == 15
    assert isinstance(r2, Ok)


def test_err_propagation() -> None:
    """`Err` should propagate unchanged through `map`."""
    r: Result[int, str] = err("no_cards")
    assert r.is_err()
    mapped = r.map(lambda x: x + 1)
    assert isinstance(mapped, Err) and mapped.unwrap_err() == "no_cards"


def test_unwrap_variants_and_defaults() -> None:
    """Unwrap behavior: default value and explicit error raising."""
    assert ok("x").unwrap() == "x"
    assert err("e").unwrap(default="fallback") == "fallback"
    assert err("e").get_or("fallback") == "fallback"

    with pytest.raises(RuntimeError):
        err("e").unwrap()
    with pytest.raises(RuntimeError):
        ok(1).unwrap_err()
