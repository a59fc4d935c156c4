"""
Configuration for the process monitor.
"""

from dataclasses import dataclass, field

from src.alerts.models import AlertConfig
from src.analytics.models import AnalyticsConfig


@dataclass
class MonitorConfig:
    """Configuration for the tick-driven monitor loop"""

    # Kafka settings
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_topic: str = "process-metrics"
    kafka_group_id: str = "process-monitor-group"
    kafka_auto_offset_reset: str = "latest"
    poll_timeout_ms: int = 1000

    # PostgreSQL settings
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "mlops_db"
    postgres_user: str = "mlops"
    postgres_password: str = "mlops_password"

    # Redis settings (cross-process cooldowns); in-memory cooldowns when unset
    redis_host: str | None = None
    redis_port: int = 6379

    # Loop behavior
    tick_interval_seconds: float = 2.0
    max_processes: int = 50
    max_workers: int = 4
    batch_size: int = 10
    stats_interval_seconds: float = 30.0

    # Warm-up training from stored snapshots
    warmup_training: bool = False
    warmup_limit: int = 5000
    models_path: str = "models"

    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)

    def __post_init__(self):
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be positive")
        if self.max_processes < 1 or self.max_workers < 1:
            raise ValueError("max_processes and max_workers must be positive")
