"""Priority-ordered pending requests."""

from __future__ import annotations

from collections.abc import Iterator

from .request import ToolRequest


class RequestQueue:
    """Pending requests ordered high < normal < low.

    Every insert re-applies a stable sort, so within a tier insertion order is
    the tiebreak.
    """

    def __init__(self) -> None:
        self._items: list[ToolRequest] = []

    def enqueue(self, request: ToolRequest) -> None:
        self._items.append(request)
        self._items.sort(key=lambda r: r.priority.rank)

    def dequeue(self) -> ToolRequest | None:
        if not self._items:
            return None
        return self._items.pop(0)

    def peek(self) -> ToolRequest | None:
        return self._items[0] if self._items else None

    def remove(self, request_id: str) -> ToolRequest | None:
        """Remove a pending request; no-op when it is not queued."""
        for idx, request in enumerate(self._items):
            if request.id == request_id:
                return self._items.pop(idx)
        return None

    def drain(self) -> list[ToolRequest]:
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, request_id: object) -> bool:
        return any(r.id == request_id for r in self._items)

    def __iter__(self) -> Iterator[ToolRequest]:
        return iter(list(self._items))
