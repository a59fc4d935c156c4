"""
Pytest configuration and shared fixtures.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from src.alerts.models import AlertConfig
from src.analytics.models import AnalyticsConfig, ProcessSample
from src.generator.models import GeneratorConfig, ProcessAnomalyType


# Generator fixtures
@pytest.fixture
def basic_config():
    """Basic generator configuration for testing."""
    return GeneratorConfig(
        kafka_bootstrap_servers="localhost:9092",
        kafka_topic="test-topic",
        num_processes=6,
        event_interval_seconds=1.0,
        anomaly_probability=0.1,
    )


@pytest.fixture
def minimal_config():
    """Minimal configuration for fast tests."""
    return GeneratorConfig(
        num_processes=1,
        event_interval_seconds=0.1,
        anomaly_probability=0.0,  # No anomalies for predictable tests
    )


@pytest.fixture
def all_anomaly_types():
    """List of all anomaly types."""
    return list(ProcessAnomalyType)


# Analytics fixtures
@pytest.fixture
def analytics_config():
    """Small, seeded analytics configuration."""
    return AnalyticsConfig(
        num_trees=20,
        sample_size=64,
        hidden_units=8,
        predictor_epochs=5,
        min_training_samples=20,
        seed=7,
    )


@pytest.fixture
def base_time():
    return datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_sample(base_time):
    """Factory for process samples spaced two seconds apart."""

    def _make(index=0, process_id="1001", cpu=20.0, memory=300.0, **metrics):
        return ProcessSample(
            process_id=process_id,
            timestamp=base_time + timedelta(seconds=2 * index),
            name=metrics.pop("name", "nginx"),
            pid=int(process_id) if process_id.isdigit() else None,
            cpu=cpu,
            memory=memory,
            threads=metrics.pop("threads", 10),
            io_read=metrics.pop("io_read", 100.0),
            io_write=metrics.pop("io_write", 50.0),
            **metrics,
        )

    return _make


@pytest.fixture
def normal_samples(make_sample):
    """Steady samples for three processes."""
    samples = []
    for i in range(40):
        for pid in ("1001", "1002", "1003"):
            samples.append(
                make_sample(i, process_id=pid, cpu=20.0 + (i % 5), memory=300.0 + (i % 3))
            )
    return samples


# Alert fixtures
class FakeClock:
    """Settable clock for cooldown tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock(base_time):
    return FakeClock(base_time)


@pytest.fixture
def alert_store():
    """Alert store mock that accepts every write."""
    store = MagicMock()
    store.insert_alert.return_value = True
    store.update_alert.return_value = True
    store.get_alert.return_value = None
    return store


@pytest.fixture
def alert_config():
    return AlertConfig()
