"""Tests for the bounded FIFO cache."""

from __future__ import annotations

import pytest

from gitlab_pipeview.cache import BoundedCache, Error, Found, NotFound


def test_get_missing():
    assert BoundedCache(3).get("a") is None


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        BoundedCache(0)


def test_evicts_oldest_insertion():
    cache = BoundedCache(2)
    cache.insert("a", 1)
    cache.insert("b", 2)
    cache.get("a")
    cache.insert("c", 3)
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]
    assert len(cache) == 2


def test_reinsert_keeps_position():
    cache = BoundedCache(2)
    cache.insert("a", 1)
    cache.insert("b", 2)
    cache.insert("a", 10)
    assert cache.get("a") == 10
    cache.insert("c", 3)
    assert "a" not in cache
    assert cache.get("b") == 2


def test_invalidate_removes_from_order():
    cache = BoundedCache(2)
    cache.insert("a", 1)
    cache.insert("b", 2)
    cache.invalidate("a")
    cache.insert("c", 3)
    assert cache.keys() == ["b", "c"]
    assert cache.get("b") == 2


def test_invalidate_missing_is_noop():
    cache = BoundedCache(1)
    cache.invalidate("nope")
    assert len(cache) == 0


def test_reinserting_after_invalidate_moves_to_back():
    cache = BoundedCache(3)
    for key in ("a", "b", "c"):
        cache.insert(key, key)
    cache.invalidate("a")
    cache.insert("a", "again")
    assert cache.keys() == ["b", "c", "a"]


def test_outcome_values_compare_by_content():
    assert NotFound() == NotFound()
    assert Error("boom") == Error("boom")
    assert Found(None) != NotFound()
