"""
Alert engine: threshold and ML-derived rules, cooldown deduplication and
the alert lifecycle.

Every rule fires through a cooldown key; within one cooldown period at most
one alert is created per key, however often the condition is observed.
"""

import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from .cooldown import CooldownMap
from .models import Alert, AlertConfig, AlertSource, AlertType, calculate_severity

logger = structlog.get_logger(__name__)

ANOMALY_ALGORITHM = "Isolation Forest"
PREDICTION_ALGORITHM = "MLP Sequence Regressor"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _read(process: Any, name: str, default: Any = None) -> Any:
    if isinstance(process, Mapping):
        return process.get(name, default)
    return getattr(process, name, default)


def _usage(value: Any) -> float | None:
    """Current value of a system stat given as {"usage": x} or a plain number"""
    if isinstance(value, Mapping):
        value = value.get("usage")
    if value is None:
        return None
    return float(value)


class AlertEngine:
    """Turns readings and analysis results into deduplicated alerts"""

    def __init__(
        self,
        store,
        config: AlertConfig | None = None,
        cooldowns=None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.config = config or AlertConfig()
        self.cooldowns = cooldowns or CooldownMap(period_seconds=self.config.cooldown_seconds)
        self.clock = clock or _utcnow

        self.active_alerts: dict[str, Alert] = {}
        self._active_lock = threading.Lock()

        logger.info(
            "Alert engine initialized",
            cooldown_seconds=self.config.cooldown_seconds,
            cooldowns=type(self.cooldowns).__name__,
        )

    # ========================================
    # Rules
    # ========================================

    def _fire(self, key: str, **data) -> Alert | None:
        if not self.cooldowns.try_acquire(key, self.clock()):
            logger.debug("Alert suppressed by cooldown", key=key)
            return None
        return self.create_alert(**data)

    def check_system_thresholds(self, stats: Mapping[str, Any]) -> list[Alert]:
        """Evaluate host-wide cpu, memory and disk usage"""
        alerts = []
        for metric in self.config.system_metrics:
            value = _usage(stats.get(metric))
            if value is None:
                continue
            threshold = self.config.thresholds[metric]

            if value > threshold.critical:
                tier, cutoff, wording = AlertType.CRITICAL, threshold.critical, "critical"
            elif value > threshold.warning:
                tier, cutoff, wording = AlertType.WARNING, threshold.warning, "elevated"
            else:
                continue

            alert = self._fire(
                f"system:{metric}:{tier.value}",
                type=tier,
                source=AlertSource.THRESHOLD,
                metric=metric,
                message=f"System {metric} usage {wording} at {value:.1f}%",
                details={"current_value": value, "threshold": cutoff},
            )
            if alert:
                alerts.append(alert)
        return alerts

    def check_process_thresholds(self, process: Any, analysis=None) -> list[Alert]:
        """Evaluate cpu, anomaly and forecast rules for one process"""
        alerts = []

        pid = _read(process, "pid")
        process_id = str(pid if pid is not None else _read(process, "process_id"))
        name = _read(process, "name") or "unknown"
        cpu = float(_read(process, "cpu") or 0.0)
        common = {"process_id": process_id, "process_name": name}

        if cpu > self.config.process_cpu_threshold:
            alert = self._fire(
                f"process:{process_id}:cpu",
                type=AlertType.WARNING,
                source=AlertSource.THRESHOLD,
                metric="cpu",
                message=f"Process {name} using {cpu:.1f}% CPU",
                details={"current_value": cpu, "threshold": self.config.process_cpu_threshold},
                **common,
            )
            if alert:
                alerts.append(alert)

        if analysis is None:
            return alerts

        anomaly = analysis.anomaly
        if anomaly.is_anomaly:
            anomaly_threshold = self.config.thresholds.get("anomaly_score")
            details = {"anomaly_score": anomaly.score}
            if anomaly_threshold is not None:
                details["threshold"] = anomaly_threshold.warning
            alert = self._fire(
                f"process:{process_id}:anomaly",
                type=AlertType.CRITICAL if anomaly.severity == "critical" else AlertType.WARNING,
                source=AlertSource.ANOMALY,
                metric="anomaly",
                message=f"Anomaly detected in {name} (score: {anomaly.score:.2f})",
                details=details,
                ml_detected=True,
                algorithm=ANOMALY_ALGORITHM,
                **common,
            )
            if alert:
                alerts.append(alert)

        if analysis.predictions:
            mean_prediction = sum(analysis.predictions) / len(analysis.predictions)
            if mean_prediction > self.config.prediction_threshold:
                alert = self._fire(
                    f"process:{process_id}:prediction",
                    type=AlertType.WARNING,
                    source=AlertSource.PREDICTION,
                    metric="cpu",
                    message=f"Forecast: {name} will reach {mean_prediction:.1f}% CPU",
                    details={"prediction": mean_prediction, "current_value": cpu},
                    ml_detected=True,
                    algorithm=PREDICTION_ALGORITHM,
                    **common,
                )
                if alert:
                    alerts.append(alert)

        return alerts

    # ========================================
    # Lifecycle
    # ========================================

    def create_alert(self, **data) -> Alert | None:
        """Create, persist and index an alert; None when it can't be stored"""
        try:
            now = self.clock()
            data.setdefault("severity", calculate_severity(data.get("type")))
            alert = Alert(
                alert_id=f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
                created_at=now,
                updated_at=now,
                **data,
            )
            if not self.store.insert_alert(alert):
                logger.error("Alert not persisted", alert_id=alert.alert_id, message=alert.message)
                return None
        except Exception as e:
            logger.error("Error creating alert", error=str(e), exc_info=True)
            return None

        with self._active_lock:
            self.active_alerts[alert.alert_id] = alert

        logger.info(
            "Alert created",
            alert_id=alert.alert_id,
            type=alert.type.value,
            source=alert.source.value,
            process=alert.process_name,
        )
        return alert

    def _lookup(self, alert_id: str) -> Alert | None:
        with self._active_lock:
            alert = self.active_alerts.get(alert_id)
        return alert or self.store.get_alert(alert_id)

    def _transition(self, alert_id: str, apply: Callable[[Alert, datetime], bool]) -> Alert | None:
        try:
            current = self._lookup(alert_id)
            if current is None:
                return None

            updated = replace(current)
            if apply(updated, self.clock()) and not self.store.update_alert(updated):
                logger.error("Alert update not persisted", alert_id=alert_id)
                return None
        except Exception as e:
            logger.error("Error updating alert", alert_id=alert_id, error=str(e))
            return None

        with self._active_lock:
            self.active_alerts.pop(alert_id, None)
        return updated

    def acknowledge_alert(self, alert_id: str, acknowledged_by: str = "system") -> Alert | None:
        return self._transition(alert_id, lambda alert, at: alert.acknowledge(acknowledged_by, at))

    def resolve_alert(self, alert_id: str) -> Alert | None:
        return self._transition(alert_id, lambda alert, at: alert.resolve(at))

    def get_active_alerts(self) -> list[Alert]:
        with self._active_lock:
            alerts = list(self.active_alerts.values())
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    # ========================================
    # Queries
    # ========================================

    def get_recent_alerts(self, limit: int = 50, unacknowledged_only: bool = False) -> list[Alert]:
        try:
            return self.store.get_recent_alerts(limit=limit, unacknowledged_only=unacknowledged_only)
        except Exception as e:
            logger.error("Error fetching alerts", error=str(e))
            return []

    def get_alert_stats(self, time_range: timedelta = timedelta(hours=24)) -> dict | None:
        """Counts by type and ML-detected count over a trailing window"""
        try:
            stats = self.store.get_alert_stats(self.clock() - time_range)
        except Exception as e:
            logger.error("Error getting alert stats", error=str(e))
            return None
        if stats is None:
            return None
        return {**stats, "time_range_seconds": time_range.total_seconds()}

    def clear_old_alerts(self, days_old: int = 30) -> int:
        """Delete resolved alerts created more than days_old days ago"""
        cutoff = self.clock() - timedelta(days=days_old)
        try:
            deleted = self.store.delete_resolved_alerts(cutoff)
        except Exception as e:
            logger.error("Error clearing old alerts", error=str(e))
            return 0
        logger.info("Cleared old alerts", deleted=deleted, days_old=days_old)
        return deleted
