"""
Tests for analytics data models.
"""

from datetime import UTC, datetime

import pytest

from src.analytics.models import (
    AnalysisResult,
    AnalyticsConfig,
    AnomalyResult,
    Classification,
    ProcessSample,
    TrainerConfig,
)


class TestProcessSample:
    """Tests for ProcessSample parsing and records."""

    def test_from_generator_message(self):
        message = {
            "type": "process_metric",
            "timestamp": "2024-01-01T12:00:00+00:00",
            "process_id": "1001",
            "pid": 1001,
            "name": "postgres",
            "cpu": 42.5,
            "memory": 800.0,
            "threads": 120,
            "priority": 15,
            "io_read": 1500.0,
        }

        sample = ProcessSample.from_message(message)

        assert sample.process_id == "1001"
        assert sample.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert sample.cpu == 42.5
        assert sample.threads == 120
        assert sample.io_write == 0.0
        assert sample.network_received == 0.0

    def test_pid_used_as_identifier(self):
        sample = ProcessSample.from_message({"pid": 7, "timestamp": "2024-01-01T00:00:00Z"})

        assert sample.process_id == "7"
        assert sample.threads == 1
        assert sample.name == "unknown"

    def test_missing_identifier_rejected(self):
        with pytest.raises(ValueError, match="process_id"):
            ProcessSample.from_message({"cpu": 1.0})

    def test_to_record(self, make_sample):
        sample = make_sample(cpu=10.0)
        analysis = AnalysisResult(
            anomaly=AnomalyResult(score=0.7, is_anomaly=True, severity="warning"),
            classification=Classification(label="web-server", confidence=0.9),
            predictions=[11.0, 12.0],
        )

        record = sample.to_record(analysis)

        assert record["process_id"] == "1001"
        assert record["process_name"] == "nginx"
        assert record["metrics"]["cpu"] == 10.0
        assert record["ml_analysis"] == {
            "anomaly_score": 0.7,
            "is_anomaly": True,
            "classification": "web-server",
            "confidence": 0.9,
            "predictions": [11.0, 12.0],
        }
        assert "ml_analysis" not in sample.to_record()


class TestAnomalyResult:
    @pytest.mark.parametrize(
        ("score", "is_anomaly", "severity"),
        [
            (0.0, False, "normal"),
            (0.6, False, "normal"),
            (0.61, True, "warning"),
            (0.8, True, "warning"),
            (0.95, True, "critical"),
        ],
    )
    def test_tiers(self, score, is_anomaly, severity):
        result = AnomalyResult.from_score(score, warning=0.6, critical=0.8)

        assert result.is_anomaly is is_anomaly
        assert result.severity == severity


class TestConfigs:
    def test_analytics_defaults(self):
        config = AnalyticsConfig()

        assert config.num_trees == 100
        assert config.sample_size == 256
        assert config.lookback == 10
        assert config.max_history_size == 100

    def test_analytics_validation(self):
        with pytest.raises(ValueError):
            AnalyticsConfig(anomaly_warning_threshold=0.9, anomaly_critical_threshold=0.8)
        with pytest.raises(ValueError):
            AnalyticsConfig(max_history_size=0)

    def test_trainer_validation(self):
        assert TrainerConfig().training_limit == 5000
        with pytest.raises(ValueError):
            TrainerConfig(training_limit=10, min_samples=50)

    def test_analysis_to_dict(self):
        result = AnalysisResult(anomaly=AnomalyResult(), classification=Classification())

        data = result.to_dict()

        assert data["anomaly"] == {"score": 0.0, "is_anomaly": False, "severity": "normal"}
        assert data["classification"]["class"] == "unknown"
        assert data["predictions"] is None
