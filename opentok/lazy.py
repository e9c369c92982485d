"""One-shot initialization cells for shared collaborators."""

from __future__ import annotations

import threading
from enum import Enum, auto
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class CellState(Enum):
    """A cell moves from EMPTY to READY exactly once."""

    EMPTY = auto()
    READY = auto()


class LazyCell(Generic[T]):
    """Build a value on first access and reuse it afterwards.

    Concurrent first accesses are serialized by a lock so the factory runs at
    most once. Once READY, reads do not take the lock. A factory that raises
    leaves the cell EMPTY so a later access can retry.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._state = CellState.EMPTY
        self._value: Optional[T] = None

    @property
    def state(self) -> CellState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is CellState.READY

    def get(self) -> T:
        if self._state is CellState.READY:
            return self._value  # type: ignore[return-value]
        with self._lock:
            if self._state is CellState.EMPTY:
                self._value = self._factory()
                self._state = CellState.READY
        return self._value  # type: ignore[return-value]
