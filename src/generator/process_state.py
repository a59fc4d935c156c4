"""
Process state management and per-process metrics generation.
"""

import random
from datetime import UTC, datetime
from typing import Any

from .models import PROCESS_NAMES, WORKLOAD_PROFILES, ProcessAnomalyType, WorkloadType


class ProcessState:
    """Tracks the state of a simulated process over time"""

    def __init__(self, pid: int, workload: WorkloadType, name: str | None = None):
        self.pid = pid
        self.workload = workload
        self.name = name or random.choice(PROCESS_NAMES[workload])

        # Base values drawn once from the workload profile
        profile = WORKLOAD_PROFILES[workload]
        self.base = {metric: random.uniform(low, high) for metric, (low, high) in profile.items()}

        # Active anomaly
        self.active_anomaly: ProcessAnomalyType | None = None
        self.anomaly_duration: int = 0

    def generate_metrics(
        self,
        inject_anomaly: ProcessAnomalyType | None = None,
        timestamp: datetime | None = None,
    ) -> dict[str, Any]:
        """Generate one telemetry message with optional anomaly injection"""

        if inject_anomaly:
            self.active_anomaly = inject_anomaly
            self.anomaly_duration = random.randint(10, 45)  # ticks

        mult = dict.fromkeys(self.base, 1.0)

        if self.active_anomaly:
            if self.active_anomaly == ProcessAnomalyType.CPU_SPIKE:
                mult["cpu"] = random.uniform(2.5, 5.0)
            elif self.active_anomaly == ProcessAnomalyType.MEMORY_LEAK:
                mult["memory"] = random.uniform(1.8, 3.0)
            elif self.active_anomaly == ProcessAnomalyType.IO_STORM:
                mult["io_read"] = random.uniform(4.0, 8.0)
                mult["io_write"] = random.uniform(4.0, 8.0)
            elif self.active_anomaly == ProcessAnomalyType.THREAD_EXPLOSION:
                mult["threads"] = random.uniform(5.0, 10.0)
                mult["cpu"] = random.uniform(1.3, 1.8)
            elif self.active_anomaly == ProcessAnomalyType.NETWORK_BURST:
                mult["network_sent"] = random.uniform(5.0, 10.0)
                mult["network_received"] = random.uniform(5.0, 10.0)

            self.anomaly_duration -= 1
            if self.anomaly_duration <= 0:
                self.active_anomaly = None

        values = {
            metric: max(0.0, base * mult[metric] * random.uniform(0.9, 1.1))
            for metric, base in self.base.items()
        }

        return {
            "type": "process_metric",
            "timestamp": (timestamp or datetime.now(UTC)).isoformat(),
            "process_id": str(self.pid),
            "pid": self.pid,
            "name": self.name,
            "workload": self.workload.value,
            "cpu": round(min(100.0, values["cpu"]), 2),
            "memory": round(values["memory"], 1),
            "threads": max(1, int(round(values["threads"]))),
            "priority": int(self.base["priority"]),
            "io_read": round(values["io_read"], 2),
            "io_write": round(values["io_write"], 2),
            "network_sent": round(values["network_sent"], 2),
            "network_received": round(values["network_received"], 2),
        }


def build_labeled_dataset(
    samples_per_class: int = 20,
    workloads: list[WorkloadType] | None = None,
    seed: int | None = None,
) -> list[tuple[dict[str, float], str]]:
    """Draw labeled process samples uniformly from each workload profile.

    Returns (process metrics, label) pairs suitable for ProcessClassifier.train.
    """
    rng = random.Random(seed)
    dataset = []
    for workload in workloads or list(WorkloadType):
        profile = WORKLOAD_PROFILES[workload]
        for _ in range(samples_per_class):
            process = {metric: rng.uniform(low, high) for metric, (low, high) in profile.items()}
            dataset.append((process, workload.value))
    return dataset
