"""Tests for the result cache and its lazy TTL expiry."""

import pytest

from toolsmithy.lifecycle.cache import ResultCache


def test_hit_while_fresh_miss_once_expired():
    cache = ResultCache(ttl_seconds=300)
    cache.put("k", {"rows": 3}, now=0.0)

    assert cache.get("k", now=299.9) == {"rows": 3}
    # Fresh means strictly younger than the TTL
    assert cache.get("k", now=300.0) is None


def test_expired_entries_stay_until_overwritten_or_cleared():
    cache = ResultCache(ttl_seconds=10)
    cache.put("k", "old", now=0.0)

    assert cache.lookup("k", now=50.0) == (False, None)
    assert len(cache) == 1
    assert "k" in cache

    cache.put("k", "new", now=50.0)
    assert cache.get("k", now=55.0) == "new"


def test_lookup_distinguishes_cached_none_from_miss():
    cache = ResultCache(ttl_seconds=10)
    cache.put("none", None, now=0.0)

    assert cache.lookup("none", now=1.0) == (True, None)
    assert cache.lookup("missing", now=1.0) == (False, None)
    assert cache.get("missing", now=1.0, default="fallback") == "fallback"


def test_clear_reports_removed_entries():
    cache = ResultCache(ttl_seconds=10)
    cache.put("a", 1, now=0.0)
    cache.put("b", 2, now=0.0)

    assert cache.clear() == 2
    assert len(cache) == 0
    assert cache.clear() == 0


def test_ttl_change_applies_to_existing_entries():
    cache = ResultCache(ttl_seconds=100)
    cache.put("k", 1, now=0.0)

    cache.ttl = 5
    assert cache.get("k", now=10.0) is None


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        ResultCache(ttl_seconds=0)
