"""Bounded insertion-ordered caches for pipeline outcomes and job logs."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .models.pipelines import PipelineDetails

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class Found:
    details: PipelineDetails


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Error:
    message: str


CachedPipeline = Union[Found, NotFound, Error]


class BoundedCache(Generic[K, V]):
    """Map with FIFO eviction of the oldest-inserted key once *capacity* is reached.

    Re-inserting a key that is still present replaces its value without
    changing its place in the eviction order.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            msg = "cache capacity must be at least 1"
            raise ValueError(msg)
        self.capacity = capacity
        self._entries: dict[K, V] = {}
        self._order: deque[K] = deque()

    def get(self, key: K) -> V | None:
        return self._entries.get(key)

    def insert(self, key: K, value: V) -> None:
        if key not in self._entries:
            if len(self._entries) >= self.capacity:
                oldest = self._order.popleft()
                del self._entries[oldest]
                logger.debug("Evicted %r from cache", oldest)
            self._order.append(key)
        self._entries[key] = value

    def invalidate(self, key: K) -> None:
        if key in self._entries:
            del self._entries[key]
            self._order.remove(key)
            logger.debug("Invalidated %r", key)

    def keys(self) -> list[K]:
        """Keys from oldest to newest insertion."""
        return list(self._order)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


PipelineCache = BoundedCache[str, CachedPipeline]
JobLogCache = BoundedCache[int, str]
