"""
Data models and configuration for the process analytics engine.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

METRIC_NAMES = (
    "cpu",
    "memory",
    "threads",
    "io_read",
    "io_write",
    "network_sent",
    "network_received",
)


@dataclass(frozen=True)
class ProcessSample:
    """One resource-usage reading for a process"""

    process_id: str
    timestamp: datetime
    name: str = "unknown"
    pid: int | None = None
    priority: int = 0
    cpu: float = 0.0
    memory: float = 0.0
    threads: int = 1
    io_read: float = 0.0
    io_write: float = 0.0
    network_sent: float = 0.0
    network_received: float = 0.0

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ProcessSample":
        """Build a sample from a telemetry message

        Raises:
            ValueError: If the message carries no process identifier
        """
        pid = message.get("pid")
        process_id = message.get("process_id") or (str(pid) if pid is not None else None)
        if not process_id:
            raise ValueError("Telemetry message has no process_id or pid")

        raw_ts = message.get("timestamp")
        if isinstance(raw_ts, datetime):
            timestamp = raw_ts
        elif raw_ts:
            timestamp = datetime.fromisoformat(str(raw_ts).replace("Z", "+00:00"))
        else:
            timestamp = datetime.now(UTC)

        return cls(
            process_id=str(process_id),
            timestamp=timestamp,
            name=message.get("name") or "unknown",
            pid=int(pid) if pid is not None else None,
            priority=int(message.get("priority") or 0),
            cpu=float(message.get("cpu") or 0.0),
            memory=float(message.get("memory") or 0.0),
            threads=int(message.get("threads") or 1),
            io_read=float(message.get("io_read") or 0.0),
            io_write=float(message.get("io_write") or 0.0),
            network_sent=float(message.get("network_sent") or 0.0),
            network_received=float(message.get("network_received") or 0.0),
        )

    def metrics(self) -> dict[str, float]:
        """Metric map of this sample"""
        return {name: getattr(self, name) for name in METRIC_NAMES}

    def snapshot(self) -> dict[str, Any]:
        """Compact entry kept in the per-process history buffer"""
        return {
            "timestamp": self.timestamp,
            "cpu": self.cpu,
            "memory": self.memory,
            "threads": self.threads,
            "io_read": self.io_read,
            "io_write": self.io_write,
        }

    def to_record(self, analysis: "AnalysisResult | None" = None) -> dict[str, Any]:
        """Metric snapshot record handed to the persistence layer"""
        record = {
            "process_id": self.process_id,
            "process_name": self.name,
            "pid": self.pid,
            "timestamp": self.timestamp,
            "metrics": self.metrics(),
        }
        if analysis is not None:
            record["ml_analysis"] = analysis.summary()
        return record


@dataclass
class AnomalyResult:
    """Outcome of the isolation forest for one feature vector"""

    score: float = 0.0
    is_anomaly: bool = False
    severity: str = "normal"

    @classmethod
    def from_score(cls, score: float, warning: float, critical: float) -> "AnomalyResult":
        """Derive flag and severity tier from a raw score"""
        if score > critical:
            severity = "critical"
        elif score > warning:
            severity = "warning"
        else:
            severity = "normal"
        return cls(score=score, is_anomaly=score > warning, severity=severity)


@dataclass
class Classification:
    """Workload label predicted for a process"""

    label: str = "unknown"
    confidence: float = 0.0
    probabilities: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "class": self.label,
            "confidence": self.confidence,
            "probabilities": dict(self.probabilities),
        }


@dataclass
class AnalysisResult:
    """Everything the analytics engine derived for one sample"""

    anomaly: AnomalyResult
    classification: Classification
    predictions: list[float] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def summary(self) -> dict[str, Any]:
        """Flattened view stored alongside metric snapshots"""
        return {
            "anomaly_score": self.anomaly.score,
            "is_anomaly": self.anomaly.is_anomaly,
            "classification": self.classification.label,
            "confidence": self.classification.confidence,
            "predictions": list(self.predictions or []),
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        return {
            "anomaly": asdict(self.anomaly),
            "classification": self.classification.to_dict(),
            "predictions": self.predictions,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class AnalyticsConfig:
    """Configuration for the analytics engine and its models"""

    # Isolation forest
    num_trees: int = 100
    sample_size: int = 256
    contamination: float = 0.1

    # Sequence predictor
    lookback: int = 10
    hidden_units: int = 50
    predictor_epochs: int = 30
    predictor_batch_size: int = 16
    forecast_steps: int = 5

    # Anomaly score tiers
    anomaly_warning_threshold: float = 0.6
    anomaly_critical_threshold: float = 0.8

    # History
    max_history_size: int = 100
    feature_window: int = 20

    min_training_samples: int = 50
    seed: int | None = None

    def __post_init__(self):
        if self.anomaly_warning_threshold > self.anomaly_critical_threshold:
            raise ValueError("anomaly_warning_threshold must not exceed the critical threshold")
        if self.max_history_size < 1:
            raise ValueError("max_history_size must be positive")


@dataclass
class TrainerConfig:
    """Configuration for batch training from the metric snapshot store"""

    training_limit: int = 5000
    min_samples: int = 50
    predictor_points: int = 500
    models_path: str = "models"

    # PostgreSQL settings
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "mlops_db"
    postgres_user: str = "mlops"
    postgres_password: str = "mlops_password"

    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)

    def __post_init__(self):
        if self.training_limit < self.min_samples:
            raise ValueError("training_limit must be at least min_samples")
