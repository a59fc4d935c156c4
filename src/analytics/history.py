"""
Bounded per-process history of recent metric snapshots.
"""

import threading
from collections import deque
from typing import Any


class HistoryStore:
    """FIFO buffer per process; the oldest entry is evicted at capacity"""

    def __init__(self, max_size: int = 100):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._buffers: dict[str, deque] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, process_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(process_id)
            if lock is None:
                lock = self._locks[process_id] = threading.Lock()
                self._buffers[process_id] = deque(maxlen=self.max_size)
            return lock

    def append(self, process_id: str, snapshot: dict[str, Any]) -> None:
        """Push a snapshot for a process"""
        with self._lock_for(process_id):
            self._buffers[process_id].append(snapshot)

    def window(self, process_id: str, n: int | None = None) -> list[dict[str, Any]]:
        """Most recent n snapshots (all when n is None), oldest first"""
        if process_id not in self._buffers:
            return []
        with self._lock_for(process_id):
            entries = list(self._buffers[process_id])
        if n is None:
            return entries
        if n <= 0:
            return []
        return entries[-n:]

    def values(self, process_id: str, field: str, n: int | None = None) -> list[float]:
        """One metric from the most recent n snapshots, missing values as 0"""
        return [float(entry.get(field) or 0.0) for entry in self.window(process_id, n)]

    def size(self, process_id: str) -> int:
        buffer = self._buffers.get(process_id)
        return len(buffer) if buffer is not None else 0

    def clear(self, process_id: str) -> None:
        """Forget a process, e.g. once it has exited"""
        with self._registry_lock:
            self._buffers.pop(process_id, None)
            self._locks.pop(process_id, None)

    def process_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)
