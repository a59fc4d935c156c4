"""
Buffers metric snapshots and writes them to the store in batches.
"""

import threading
from typing import Any

import structlog

from .models import AnalysisResult, ProcessSample

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """Accumulates snapshot records and flushes every batch_size additions"""

    def __init__(self, db, batch_size: int = 10):
        self.db = db
        self.batch_size = batch_size
        self.buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self.stats = {"buffered": 0, "flushed": 0, "failed": 0}

    def add(self, sample: ProcessSample, analysis: AnalysisResult | None = None) -> None:
        with self._lock:
            self.buffer.append(sample.to_record(analysis))
            self.stats["buffered"] += 1
            should_flush = len(self.buffer) >= self.batch_size
        if should_flush:
            self.flush()

    def flush(self) -> int:
        """Write the buffered records; returns how many were stored"""
        with self._lock:
            if not self.buffer:
                return 0
            batch = self.buffer
            self.buffer = []

        inserted = self.db.insert_batch_metrics(batch)
        dropped = len(batch) - inserted
        with self._lock:
            self.stats["flushed"] += inserted
            if dropped > 0:
                self.stats["failed"] += dropped

        if dropped > 0:
            logger.warning("Metric snapshots dropped", count=dropped)
        else:
            logger.debug("Metric snapshots saved", count=inserted)
        return inserted
