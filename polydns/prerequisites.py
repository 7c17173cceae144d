"""Lazily resolved, per-instance vendor prerequisites (account ids, zone ids)."""

import logging
import threading
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class Prerequisite(Generic[T]):
    """A value resolved at most once, shared by concurrent callers.

    If ``preset`` is given (and not empty) the resolver is never called.
    Concurrent first callers block on a lock while one of them runs the
    resolver; the others then read the cached value. A resolver that raises
    leaves the cell empty so a later call can try again.
    """

    def __init__(
        self,
        resolver: Callable[[], T],
        preset: T | None = None,
        label: str = "prerequisite",
    ):
        self._resolver = resolver
        self._label = label
        self._lock = threading.Lock()
        self._value: T | None = preset or None

    @property
    def resolved(self) -> bool:
        return self._value is not None

    def get(self) -> T:
        value = self._value
        if value is not None:
            return value

        with self._lock:
            if self._value is None:
                self._value = self._resolver()
                logger.info("Resolved %s", self._label)
            return self._value


class PrerequisiteMap(Generic[K, T]):
    """One :class:`Prerequisite` per key, e.g. a zone id per domain."""

    def __init__(
        self,
        resolver: Callable[[K], T],
        preset: T | None = None,
        label: str = "prerequisite",
    ):
        self._resolver = resolver
        self._preset = preset or None
        self._label = label
        self._lock = threading.Lock()
        self._cells: dict[K, Prerequisite[T]] = {}

    def get(self, key: K) -> T:
        if self._preset is not None:
            return self._preset

        with self._lock:
            cell = self._cells.get(key)
            if cell is None:
                cell = Prerequisite(
                    lambda: self._resolver(key),
                    label=f"{self._label} for {key}",
                )
                self._cells[key] = cell
        return cell.get()
