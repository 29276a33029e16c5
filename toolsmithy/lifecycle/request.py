"""Tool requests, priorities and cache-key derivation."""

from __future__ import annotations

import hashlib
import itertools
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

from toolsmithy.domain.errors import CacheKeyError, InvalidPriorityError


class Priority(str, Enum):
    """Queue ordering tier; lower rank dispatches first."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def coerce(cls, value: Priority | str | None) -> Priority:
        if value is None:
            return cls.NORMAL
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidPriorityError(value)


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.NORMAL: 1, Priority.LOW: 2}

_request_counter = itertools.count(1)


def generate_request_id(tool_name: str) -> str:
    """Return a process-unique id such as ``"code_search_42"``."""
    return f"{tool_name}_{next(_request_counter)}"


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=lambda v: json.dumps(v, sort_keys=True, default=str))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bytes):
        return value.hex()
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def derive_cache_key(params: dict[str, Any] | None) -> str:
    """Deterministic SHA-256 fingerprint of request parameters.

    Keys are sorted so dict insertion order does not matter; the digest is
    stable across calls and across processes.
    """
    try:
        canonical = json.dumps(
            params or {},
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=_json_default,
        )
    except (TypeError, ValueError) as exc:
        raise CacheKeyError(str(exc)) from exc
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class ToolRequest:
    """One unit of work; immutable once queued."""

    id: str
    params: dict[str, Any]
    priority: Priority = Priority.NORMAL
    created_at: float = 0.0
    cache_key: str = field(default="")

    def __post_init__(self) -> None:
        if not self.cache_key:
            self.cache_key = derive_cache_key(self.params)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "params": self.params,
            "priority": self.priority.value,
            "created_at": self.created_at,
            "cache_key": self.cache_key,
        }
