"""The single execution slot of a lifecycle manager."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from toolsmithy.domain.errors import SlotOccupiedError

from .request import ToolRequest


@dataclass
class ActiveRequest:
    request: ToolRequest
    started_at: float
    # Cooperative only: the running invocation is never interrupted
    cancelled: bool = False

    @property
    def id(self) -> str:
        return self.request.id


class ExecutionSlot:
    """Tracks in-flight work; at most one request at a time."""

    capacity = 1

    def __init__(self) -> None:
        self._active: dict[str, ActiveRequest] = {}

    @property
    def is_free(self) -> bool:
        return len(self._active) < self.capacity

    def occupy(self, request: ToolRequest, now: float) -> ActiveRequest:
        if not self.is_free:
            raise SlotOccupiedError(next(iter(self._active)))
        active = ActiveRequest(request=request, started_at=now)
        self._active[request.id] = active
        return active

    def release(self, request_id: str) -> ActiveRequest | None:
        return self._active.pop(request_id, None)

    def get(self, request_id: str) -> ActiveRequest | None:
        return self._active.get(request_id)

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._active

    def __iter__(self) -> Iterator[ActiveRequest]:
        return iter(list(self._active.values()))
