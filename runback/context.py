"""Run-scoped value store that records every written path."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Mapping, Optional

from .path import Key, get_path, set_path

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


def _segments(path: str) -> list[Key]:
    return [Key(part) for part in path.split(".")]


class ExecutionContext:
    """Nested dict of step results plus the set of paths written this run.

    Writes go through :meth:`set`, which stores the value nested under the
    dotted path and records exactly that path. Readiness checks look only at
    the written set, never at the values.
    """

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self.data: dict[str, Any] = data if data is not None else {}
        self._written: set[str] = set()
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @classmethod
    def restore(cls, snapshot: Optional[Mapping[str, Any]]) -> "ExecutionContext":
        """Seed a new context from a prior snapshot; nothing counts as written yet."""
        return cls(copy.deepcopy(dict(snapshot or {})))

    @property
    def written(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._written)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def set(self, path: str, value: Any) -> None:
        set_path(self.data, _segments(path), value)
        with self._lock:
            self._written.add(path)
            listeners = list(self._listeners)
        logger.debug(f"Context write: {path}")
        for listener in listeners:
            listener(path, value)

    def discard(self, path: str) -> None:
        """Remove the value at a dotted path, if present, and forget it was written."""
        parent: Any = self.data
        *parents, last = path.split(".")
        for key in parents:
            parent = parent.get(key) if isinstance(parent, dict) else None
        if isinstance(parent, dict):
            parent.pop(last, None)
        with self._lock:
            self._written.discard(path)

    def get(self, path: str) -> Any:
        return get_path(self.data, _segments(path))

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.data)
