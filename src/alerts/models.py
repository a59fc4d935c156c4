"""
Data models and configuration for the alerting system.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class AlertType(Enum):
    """Severity tier of an alert"""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertSource(Enum):
    """What raised an alert"""

    THRESHOLD = "threshold"
    ML = "ml"
    ANOMALY = "anomaly"
    PREDICTION = "prediction"
    SYSTEM = "system"


SEVERITY_BY_TYPE = {
    AlertType.CRITICAL: 9,
    AlertType.WARNING: 6,
    AlertType.INFO: 3,
}


def calculate_severity(alert_type: AlertType | str) -> int:
    """Numeric 1-10 severity of a tier"""
    try:
        return SEVERITY_BY_TYPE[AlertType(alert_type)]
    except (KeyError, ValueError):
        return 5


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class Alert:
    """An alert and its open -> acknowledged -> resolved lifecycle"""

    alert_id: str
    type: AlertType
    source: AlertSource
    message: str
    severity: int = 5
    process_id: str | None = None
    process_name: str | None = None
    metric: str | None = None
    details: dict[str, float] = field(default_factory=dict)
    ml_detected: bool = False
    algorithm: str | None = None
    acknowledged: bool = False
    acknowledged_at: datetime | None = None
    acknowledged_by: str | None = None
    resolved: bool = False
    resolved_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        self.type = AlertType(self.type)
        self.source = AlertSource(self.source)
        if not 1 <= self.severity <= 10:
            raise ValueError(f"severity must be within 1-10, got {self.severity}")

    def acknowledge(self, by: str, at: datetime) -> bool:
        """Mark as acknowledged; returns False when nothing changed"""
        if self.resolved or self.acknowledged:
            return False
        self.acknowledged = True
        self.acknowledged_at = at
        self.acknowledged_by = by
        self.updated_at = at
        return True

    def resolve(self, at: datetime) -> bool:
        """Mark as resolved (terminal); returns False when already resolved"""
        if self.resolved:
            return False
        self.resolved = True
        self.resolved_at = at
        self.updated_at = at
        return True

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database insertion"""
        return {
            "alert_id": self.alert_id,
            "type": self.type.value,
            "severity": self.severity,
            "source": self.source.value,
            "process_id": self.process_id,
            "process_name": self.process_name,
            "metric": self.metric,
            "message": self.message,
            "details": json.dumps(self.details),
            "ml_detected": self.ml_detected,
            "algorithm": self.algorithm,
            "acknowledged": self.acknowledged,
            "acknowledged_at": self.acknowledged_at,
            "acknowledged_by": self.acknowledged_by,
            "resolved": self.resolved,
            "resolved_at": self.resolved_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Alert":
        """Build an alert from a database row"""
        details = row.get("details") or {}
        if isinstance(details, str):
            details = json.loads(details)
        return cls(
            alert_id=row["alert_id"],
            type=row["type"],
            source=row["source"],
            message=row["message"],
            severity=row.get("severity") or 5,
            process_id=row.get("process_id"),
            process_name=row.get("process_name"),
            metric=row.get("metric"),
            details=details,
            ml_detected=bool(row.get("ml_detected")),
            algorithm=row.get("algorithm"),
            acknowledged=bool(row.get("acknowledged")),
            acknowledged_at=_parse_datetime(row.get("acknowledged_at")),
            acknowledged_by=row.get("acknowledged_by"),
            resolved=bool(row.get("resolved")),
            resolved_at=_parse_datetime(row.get("resolved_at")),
            created_at=_parse_datetime(row.get("created_at")) or datetime.now(UTC),
            updated_at=_parse_datetime(row.get("updated_at")) or datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = self.to_db_dict()
        data["details"] = dict(self.details)
        for key in ("acknowledged_at", "resolved_at", "created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class Threshold:
    """Warning and critical cutoffs for one metric"""

    warning: float
    critical: float

    def __post_init__(self):
        if self.warning > self.critical:
            raise ValueError("warning cutoff must not exceed the critical cutoff")


@dataclass
class AlertConfig:
    """Configuration for the alert engine"""

    thresholds: dict[str, Threshold] = field(
        default_factory=lambda: {
            "cpu": Threshold(warning=70, critical=85),
            "memory": Threshold(warning=75, critical=90),
            "disk": Threshold(warning=80, critical=95),
            "anomaly_score": Threshold(warning=0.6, critical=0.8),
        }
    )
    system_metrics: tuple[str, ...] = ("cpu", "memory", "disk")

    process_cpu_threshold: float = 90.0
    prediction_threshold: float = 85.0
    cooldown_seconds: float = 60.0

    def __post_init__(self):
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must not be negative")
        missing = [m for m in self.system_metrics if m not in self.thresholds]
        if missing:
            raise ValueError(f"No thresholds configured for: {missing}")
