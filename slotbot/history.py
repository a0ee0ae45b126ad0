from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class HistorySnapshot:
    entries: tuple[str, ...]
    successful_attempts: int
    total_attempts: int

    @property
    def success_rate(self) -> int:
        # Integer percent; 0 attempts reads as 0%.
        return self.successful_attempts * 100 // max(self.total_attempts, 1)


class HistoryLog:
    """Bounded, thread-safe record of recent check outcomes.

    Written by the scheduled checks, read by the /log command. Oldest entries
    are evicted once ``capacity`` is reached. Counters never go down.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._lock = threading.Lock()
        self._entries: deque[str] = deque(maxlen=capacity)
        self._total = 0
        self._successful = 0

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def record_success(self, entry: str) -> None:
        with self._lock:
            self._entries.append(entry)
            self._total += 1
            self._successful += 1

    def record_failure(self, entry: str) -> None:
        with self._lock:
            self._entries.append(entry)
            self._total += 1

    def snapshot(self) -> HistorySnapshot:
        with self._lock:
            return HistorySnapshot(
                entries=tuple(self._entries),
                successful_attempts=self._successful,
                total_attempts=self._total,
            )
