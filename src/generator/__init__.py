"""
Process Telemetry Generator for Kafka
Simulates per-process resource usage from workload archetypes with configurable anomalies.
"""

from .config import (
    CHAOS_CONFIG,
    CPU_PRESSURE_CONFIG,
    DEV_CONFIG,
    IO_HEAVY_CONFIG,
    NORMAL_CONFIG,
)
from .generator import ProcessGenerator
from .models import WORKLOAD_PROFILES, GeneratorConfig, ProcessAnomalyType, WorkloadType
from .process_state import ProcessState, build_labeled_dataset

__all__ = [
    "ProcessAnomalyType",
    "WorkloadType",
    "WORKLOAD_PROFILES",
    "GeneratorConfig",
    "ProcessState",
    "ProcessGenerator",
    "build_labeled_dataset",
    "NORMAL_CONFIG",
    "CHAOS_CONFIG",
    "CPU_PRESSURE_CONFIG",
    "IO_HEAVY_CONFIG",
    "DEV_CONFIG",
]

__version__ = "1.0.0"
