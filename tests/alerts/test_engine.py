"""
Tests for AlertEngine rules, cooldowns and lifecycle.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from src.alerts.engine import ANOMALY_ALGORITHM, PREDICTION_ALGORITHM, AlertEngine
from src.alerts.models import AlertSource, AlertType
from src.analytics.models import AnalysisResult, AnomalyResult, Classification


@pytest.fixture
def engine(alert_store, alert_config, clock):
    return AlertEngine(alert_store, alert_config, clock=clock)


def _analysis(score=0.0, severity="normal", predictions=None):
    return AnalysisResult(
        anomaly=AnomalyResult(score=score, is_anomaly=score > 0.6, severity=severity),
        classification=Classification(),
        predictions=predictions,
    )


class TestCooldown:
    """At most one alert per key per cooldown window."""

    def test_process_cpu_once_per_window(self, engine, make_sample, clock):
        process = make_sample(cpu=96.0)

        first = engine.check_process_thresholds(process)
        assert len(first) == 1
        assert first[0].details["current_value"] == 96.0
        assert first[0].type == AlertType.WARNING

        clock.advance(30)
        assert engine.check_process_thresholds(process) == []

        clock.advance(30)
        assert len(engine.check_process_thresholds(process)) == 1

    def test_system_cpu_once_per_window(self, engine, clock):
        stats = {"cpu": {"usage": 96.0}}

        first = engine.check_system_thresholds(stats)
        assert len(first) == 1
        assert first[0].details == {"current_value": 96.0, "threshold": 85}
        assert first[0].type == AlertType.CRITICAL

        clock.advance(59)
        assert engine.check_system_thresholds(stats) == []

        clock.advance(1)
        assert len(engine.check_system_thresholds(stats)) == 1

    def test_keys_are_independent(self, engine, make_sample):
        assert len(engine.check_process_thresholds(make_sample(process_id="1", cpu=96.0))) == 1
        assert len(engine.check_process_thresholds(make_sample(process_id="2", cpu=96.0))) == 1

    def test_concurrent_checks_fire_once(self, engine, make_sample):
        process = make_sample(cpu=99.0)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: engine.check_process_thresholds(process), range(50)))

        assert sum(len(r) for r in results) == 1

    def test_cooldown_consumed_when_store_fails(self, engine, alert_store, make_sample):
        alert_store.insert_alert.return_value = False
        process = make_sample(cpu=96.0)

        assert engine.check_process_thresholds(process) == []

        alert_store.insert_alert.return_value = True
        assert engine.check_process_thresholds(process) == []


class TestSystemThresholds:
    def test_warning_tier(self, engine):
        alerts = engine.check_system_thresholds({"memory": {"usage": 80.0}})

        assert len(alerts) == 1
        assert alerts[0].type == AlertType.WARNING
        assert alerts[0].metric == "memory"
        assert alerts[0].severity == 6

    def test_critical_suppresses_warning(self, engine):
        alerts = engine.check_system_thresholds({"disk": 97.0})

        assert [a.type for a in alerts] == [AlertType.CRITICAL]
        assert engine.cooldowns.get("system:disk:warning") is None
        assert engine.cooldowns.get("system:disk:critical") is not None

    def test_below_thresholds(self, engine, alert_store):
        assert engine.check_system_thresholds({"cpu": 10.0, "memory": {"usage": 20.0}}) == []
        alert_store.insert_alert.assert_not_called()

    def test_generator_message(self, engine):
        message = {
            "type": "system_metric",
            "cpu": {"usage": 72.0, "cores": 8},
            "memory": {"total": 16384, "used": 15000, "usage": 91.5},
            "disk": {"usage": 55.0},
        }

        alerts = engine.check_system_thresholds(message)

        assert {(a.metric, a.type) for a in alerts} == {
            ("cpu", AlertType.WARNING),
            ("memory", AlertType.CRITICAL),
        }


class TestProcessRules:
    def test_anomaly_alert(self, engine, make_sample):
        alerts = engine.check_process_thresholds(
            make_sample(cpu=20.0), _analysis(score=0.9, severity="critical")
        )

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.CRITICAL
        assert alert.source == AlertSource.ANOMALY
        assert alert.ml_detected is True
        assert alert.algorithm == ANOMALY_ALGORITHM
        assert alert.details == {"anomaly_score": 0.9, "threshold": 0.6}

    def test_warning_anomaly(self, engine, make_sample):
        alerts = engine.check_process_thresholds(
            make_sample(), _analysis(score=0.7, severity="warning")
        )

        assert alerts[0].type == AlertType.WARNING

    def test_prediction_alert(self, engine, make_sample):
        alerts = engine.check_process_thresholds(
            make_sample(cpu=50.0), _analysis(predictions=[80.0, 90.0, 95.0])
        )

        assert len(alerts) == 1
        assert alerts[0].source == AlertSource.PREDICTION
        assert alerts[0].algorithm == PREDICTION_ALGORITHM
        assert alerts[0].details["prediction"] == pytest.approx(88.3333, rel=1e-4)
        assert alerts[0].details["current_value"] == 50.0

    def test_low_or_empty_predictions(self, engine, make_sample):
        assert engine.check_process_thresholds(make_sample(), _analysis(predictions=[])) == []
        assert engine.check_process_thresholds(make_sample(), _analysis(predictions=[85.0])) == []

    def test_all_rules_fire_together(self, engine, make_sample):
        alerts = engine.check_process_thresholds(
            make_sample(cpu=97.0), _analysis(score=0.7, severity="warning", predictions=[99.0])
        )

        assert [a.source for a in alerts] == [
            AlertSource.THRESHOLD,
            AlertSource.ANOMALY,
            AlertSource.PREDICTION,
        ]

    def test_accepts_plain_dict(self, engine):
        alerts = engine.check_process_thresholds({"pid": 42, "name": "java", "cpu": 93.0})

        assert alerts[0].process_id == "42"
        assert alerts[0].process_name == "java"
        assert "java" in alerts[0].message


class TestLifecycle:
    def test_create_alert_indexes_and_persists(self, engine, alert_store, clock):
        alert = engine.create_alert(
            type=AlertType.INFO, source=AlertSource.SYSTEM, message="Models retrained"
        )

        assert alert.severity == 3
        assert alert.created_at == clock.now
        alert_store.insert_alert.assert_called_once_with(alert)
        assert engine.get_active_alerts() == [alert]

    def test_severity_override(self, engine):
        alert = engine.create_alert(
            type=AlertType.WARNING, source=AlertSource.ML, message="m", severity=8
        )

        assert alert.severity == 8

    def test_ids_are_unique(self, engine):
        ids = {
            engine.create_alert(type="info", source="system", message=str(i)).alert_id
            for i in range(20)
        }

        assert len(ids) == 20

    def test_create_alert_failure_returns_none(self, engine, alert_store):
        alert_store.insert_alert.side_effect = Exception("connection reset")

        assert engine.create_alert(type="warning", source="threshold", message="x") is None
        assert engine.get_active_alerts() == []

    def test_invalid_alert_data_returns_none(self, engine):
        assert engine.create_alert(type="fatal", source="threshold", message="x") is None

    def test_acknowledge(self, engine, alert_store, clock):
        alert = engine.create_alert(type="warning", source="threshold", message="x")
        clock.advance(5)

        acknowledged = engine.acknowledge_alert(alert.alert_id, acknowledged_by="ops")

        assert acknowledged.acknowledged is True
        assert acknowledged.acknowledged_by == "ops"
        assert acknowledged.acknowledged_at == clock.now
        alert_store.update_alert.assert_called_once_with(acknowledged)
        assert engine.get_active_alerts() == []

    def test_acknowledge_is_idempotent(self, engine, alert_store):
        alert = engine.create_alert(type="warning", source="threshold", message="x")
        first = engine.acknowledge_alert(alert.alert_id)
        alert_store.get_alert.return_value = first

        second = engine.acknowledge_alert(alert.alert_id, acknowledged_by="someone-else")

        assert second.acknowledged_by == "system"
        assert alert_store.update_alert.call_count == 1

    def test_resolve_is_terminal(self, engine, alert_store):
        alert = engine.create_alert(type="critical", source="threshold", message="x")
        resolved = engine.resolve_alert(alert.alert_id)
        alert_store.get_alert.return_value = resolved

        assert resolved.resolved is True
        again = engine.acknowledge_alert(alert.alert_id)

        assert again.acknowledged is False
        assert engine.resolve_alert(alert.alert_id).resolved_at == resolved.resolved_at
        assert alert_store.update_alert.call_count == 1

    def test_unknown_alert(self, engine):
        assert engine.acknowledge_alert("missing") is None
        assert engine.resolve_alert("missing") is None

    def test_failed_update_keeps_alert_active(self, engine, alert_store):
        alert = engine.create_alert(type="warning", source="threshold", message="x")
        alert_store.update_alert.return_value = False

        assert engine.resolve_alert(alert.alert_id) is None
        assert engine.get_active_alerts() == [alert]
        assert alert.resolved is False


class TestQueries:
    def test_recent_alerts_delegates(self, engine, alert_store):
        alert_store.get_recent_alerts.return_value = ["a"]

        assert engine.get_recent_alerts(limit=5, unacknowledged_only=True) == ["a"]
        alert_store.get_recent_alerts.assert_called_once_with(limit=5, unacknowledged_only=True)

    def test_recent_alerts_failure(self, engine, alert_store):
        alert_store.get_recent_alerts.side_effect = Exception("down")

        assert engine.get_recent_alerts() == []

    def test_alert_stats(self, engine, alert_store, clock):
        alert_store.get_alert_stats.return_value = {
            "total": 3,
            "by_type": {"warning": 2, "critical": 1},
            "ml_detected": 1,
        }

        stats = engine.get_alert_stats(timedelta(hours=1))

        alert_store.get_alert_stats.assert_called_once_with(clock.now - timedelta(hours=1))
        assert stats["total"] == 3
        assert stats["time_range_seconds"] == 3600

    def test_alert_stats_failure(self, engine, alert_store):
        alert_store.get_alert_stats.side_effect = Exception("down")

        assert engine.get_alert_stats() is None

    def test_clear_old_alerts(self, engine, alert_store, clock):
        alert_store.delete_resolved_alerts.return_value = 4

        assert engine.clear_old_alerts(days_old=7) == 4
        alert_store.delete_resolved_alerts.assert_called_once_with(clock.now - timedelta(days=7))

    def test_clear_old_alerts_failure(self, engine, alert_store):
        alert_store.delete_resolved_alerts.side_effect = Exception("down")

        assert engine.clear_old_alerts() == 0
