"""
Process Monitor

Tick-driven loop: Kafka telemetry → analytics engine → alert engine, with
metric snapshots stored in PostgreSQL.

Usage:
    python -m src.monitor.run
"""

from .models import MonitorConfig
from .monitor import ProcessMonitor, latest_messages

__all__ = ["MonitorConfig", "ProcessMonitor", "latest_messages"]
