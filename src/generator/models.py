"""
Data models and enums for the process telemetry generator.
"""

from dataclasses import dataclass
from enum import Enum


class WorkloadType(Enum):
    """Workload archetypes a simulated process can belong to"""

    WEB_SERVER = "web-server"
    DATABASE = "database"
    APPLICATION = "application"
    CACHE = "cache"
    ML_TRAINING = "ml-training"
    SYSTEM = "system"


class ProcessAnomalyType(Enum):
    """Types of anomalies that can be injected into a process"""

    CPU_SPIKE = "cpu_spike"
    MEMORY_LEAK = "memory_leak"
    IO_STORM = "io_storm"
    THREAD_EXPLOSION = "thread_explosion"
    NETWORK_BURST = "network_burst"


# (low, high) ranges per metric; memory in MB, io/network in KB/s
WORKLOAD_PROFILES: dict[WorkloadType, dict[str, tuple[float, float]]] = {
    WorkloadType.WEB_SERVER: {
        "cpu": (10, 40),
        "memory": (200, 500),
        "threads": (50, 150),
        "priority": (10, 10),
        "io_read": (100, 300),
        "io_write": (50, 150),
        "network_sent": (500, 1500),
        "network_received": (1000, 3000),
    },
    WorkloadType.DATABASE: {
        "cpu": (15, 55),
        "memory": (500, 1000),
        "threads": (100, 300),
        "priority": (15, 15),
        "io_read": (1000, 3000),
        "io_write": (500, 1500),
        "network_sent": (200, 500),
        "network_received": (300, 800),
    },
    WorkloadType.APPLICATION: {
        "cpu": (5, 30),
        "memory": (100, 400),
        "threads": (10, 50),
        "priority": (8, 8),
        "io_read": (20, 100),
        "io_write": (10, 60),
        "network_sent": (50, 300),
        "network_received": (50, 300),
    },
    WorkloadType.CACHE: {
        "cpu": (2, 15),
        "memory": (300, 800),
        "threads": (4, 12),
        "priority": (10, 10),
        "io_read": (5, 50),
        "io_write": (5, 30),
        "network_sent": (2000, 5000),
        "network_received": (2000, 5000),
    },
    WorkloadType.ML_TRAINING: {
        "cpu": (60, 95),
        "memory": (800, 2000),
        "threads": (10, 40),
        "priority": (5, 5),
        "io_read": (500, 1000),
        "io_write": (200, 500),
        "network_sent": (50, 150),
        "network_received": (50, 150),
    },
    WorkloadType.SYSTEM: {
        "cpu": (0, 5),
        "memory": (5, 60),
        "threads": (1, 8),
        "priority": (20, 20),
        "io_read": (0, 20),
        "io_write": (0, 20),
        "network_sent": (0, 20),
        "network_received": (0, 20),
    },
}

PROCESS_NAMES: dict[WorkloadType, list[str]] = {
    WorkloadType.WEB_SERVER: ["nginx", "apache2", "httpd"],
    WorkloadType.DATABASE: ["postgres", "mysqld", "mongod"],
    WorkloadType.APPLICATION: ["java", "node", "gunicorn"],
    WorkloadType.CACHE: ["redis-server", "memcached"],
    WorkloadType.ML_TRAINING: ["python"],
    WorkloadType.SYSTEM: ["systemd", "kworker", "kthreadd"],
}


@dataclass
class GeneratorConfig:
    """Configuration for the process telemetry generator"""

    # Kafka settings
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_topic: str = "process-metrics"

    # Generation settings
    num_processes: int = 20
    event_interval_seconds: float = 2.0
    stats_interval_seconds: float = 10.0

    # Anomaly settings
    anomaly_probability: float = 0.02  # 2% chance per process per round
    enabled_anomalies: list[ProcessAnomalyType] | None = None

    # Host shape, used to derive the system-wide metric
    workloads: list[WorkloadType] | None = None
    num_cores: int = 8
    total_memory_mb: float = 16384.0
    disk_usage_percent: float = 55.0

    def __post_init__(self):
        if self.enabled_anomalies is None:
            self.enabled_anomalies = list(ProcessAnomalyType)
        if self.workloads is None:
            self.workloads = list(WorkloadType)
        if self.num_cores < 1:
            raise ValueError("num_cores must be at least 1")
