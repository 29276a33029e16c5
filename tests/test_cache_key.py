"""Tests for cache-key derivation and request ids."""

import hashlib
from pathlib import Path

import pytest
from pydantic import BaseModel

from toolsmithy.domain.errors import CacheKeyError
from toolsmithy.lifecycle.request import (
    ToolRequest,
    derive_cache_key,
    generate_request_id,
)


def test_key_ignores_insertion_order():
    a = derive_cache_key({"query": "foo", "limit": 10, "opts": {"x": 1, "y": 2}})
    b = derive_cache_key({"opts": {"y": 2, "x": 1}, "limit": 10, "query": "foo"})

    assert a == b


def test_key_is_sha256_of_canonical_json():
    expected = hashlib.sha256(b'{"a":1,"b":"x"}').hexdigest()

    assert derive_cache_key({"b": "x", "a": 1}) == expected


def test_different_params_give_different_keys():
    assert derive_cache_key({"q": "foo"}) != derive_cache_key({"q": "bar"})
    assert derive_cache_key({"n": 1}) != derive_cache_key({"n": "1"})


def test_empty_and_none_params_share_a_key():
    assert derive_cache_key(None) == derive_cache_key({})


def test_rich_values_are_serialised():
    class Filter(BaseModel):
        lang: str

    key = derive_cache_key(
        {"path": Path("src/app.py"), "tags": {"b", "a"}, "filter": Filter(lang="py")}
    )
    same = derive_cache_key(
        {"filter": {"lang": "py"}, "tags": ["a", "b"], "path": "src/app.py"}
    )

    assert key == same


def test_unserialisable_params_raise():
    with pytest.raises(CacheKeyError):
        derive_cache_key({"handle": object()})


def test_request_derives_key_when_missing():
    request = ToolRequest(id="r1", params={"q": "foo"})

    assert request.cache_key == derive_cache_key({"q": "foo"})
    assert request.to_dict()["priority"] == "normal"


def test_request_ids_are_unique_and_prefixed():
    ids = {generate_request_id("search") for _ in range(100)}

    assert len(ids) == 100
    assert all(rid.startswith("search_") for rid in ids)
