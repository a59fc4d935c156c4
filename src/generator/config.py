"""
Predefined configurations for different operational scenarios.
"""

from .models import GeneratorConfig, ProcessAnomalyType, WorkloadType

# Normal operation (low anomaly rate)
NORMAL_CONFIG = GeneratorConfig(
    num_processes=30,
    anomaly_probability=0.005,
    event_interval_seconds=2.0,
)


# Chaos mode (high anomaly rate, all types)
CHAOS_CONFIG = GeneratorConfig(
    num_processes=50,
    anomaly_probability=0.08,
    event_interval_seconds=1.0,
)


# Runaway CPU and thread counts only
CPU_PRESSURE_CONFIG = GeneratorConfig(
    num_processes=30,
    anomaly_probability=0.03,
    enabled_anomalies=[ProcessAnomalyType.CPU_SPIKE, ProcessAnomalyType.THREAD_EXPLOSION],
    event_interval_seconds=2.0,
)


# Storage-heavy host
IO_HEAVY_CONFIG = GeneratorConfig(
    num_processes=20,
    anomaly_probability=0.03,
    workloads=[WorkloadType.DATABASE, WorkloadType.CACHE, WorkloadType.APPLICATION],
    enabled_anomalies=[ProcessAnomalyType.IO_STORM, ProcessAnomalyType.MEMORY_LEAK],
    event_interval_seconds=2.0,
)


# Development/Testing (fast and small)
DEV_CONFIG = GeneratorConfig(num_processes=6, anomaly_probability=0.02, event_interval_seconds=1.0)
