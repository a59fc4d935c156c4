"""
Tests for AlertDatabase.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from src.alerts.database import ALERT_COLUMNS, AlertDatabase
from src.alerts.models import Alert

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_connection():
    with patch("src.core.database.psycopg2.connect") as mock_connect:
        connection = MagicMock()
        mock_connect.return_value = connection
        yield connection


@pytest.fixture
def cursor(mock_connection):
    return mock_connection.cursor.return_value


@pytest.fixture
def db(mock_connection):
    return AlertDatabase(
        host="localhost", port=5432, database="test_db", user="test", password="test"
    )


@pytest.fixture
def alert():
    return Alert(
        alert_id="a1",
        type="critical",
        source="anomaly",
        message="Anomaly detected in redis-server (score: 0.91)",
        details={"anomaly_score": 0.91},
        ml_detected=True,
        created_at=NOW,
        updated_at=NOW,
    )


def _row(alert):
    return alert.to_db_dict()


class TestAlertDatabase:
    """Tests for AlertDatabase."""

    def test_ensure_tables(self, db, cursor):
        db.ensure_tables()

        sql = cursor.execute.call_args[0][0]
        assert "CREATE TABLE IF NOT EXISTS alerts" in sql

    def test_insert_alert(self, db, cursor, alert):
        assert db.insert_alert(alert) is True

        sql, params = cursor.execute.call_args[0]
        assert "INSERT INTO alerts" in sql
        assert params["alert_id"] == "a1"
        assert params["type"] == "critical"

    def test_insert_alert_failure(self, db, cursor, alert):
        cursor.execute.side_effect = Exception("duplicate key")

        assert db.insert_alert(alert) is False

    def test_update_alert(self, db, cursor, alert):
        alert.resolve(NOW)

        assert db.update_alert(alert) is True
        sql, params = cursor.execute.call_args[0]
        assert sql.strip().startswith("UPDATE alerts")
        assert params["resolved"] is True

    def test_get_alert(self, db, cursor, alert):
        cursor.description = [(c,) for c in ALERT_COLUMNS]
        cursor.fetchall.return_value = [tuple(_row(alert)[c] for c in ALERT_COLUMNS)]

        assert db.get_alert("a1") == alert

    def test_get_alert_missing(self, db, cursor):
        cursor.description = [(c,) for c in ALERT_COLUMNS]
        cursor.fetchall.return_value = []

        assert db.get_alert("nope") is None

    def test_get_recent_alerts_unacknowledged(self, db, cursor, alert):
        cursor.description = [(c,) for c in ALERT_COLUMNS]
        cursor.fetchall.return_value = [tuple(_row(alert)[c] for c in ALERT_COLUMNS)]

        alerts = db.get_recent_alerts(limit=10, unacknowledged_only=True)

        assert alerts == [alert]
        sql, params = cursor.execute.call_args[0]
        assert "acknowledged = FALSE" in sql
        assert params == (10,)

    def test_get_recent_alerts_failure(self, db, cursor):
        cursor.execute.side_effect = Exception("timeout")

        assert db.get_recent_alerts() == []

    def test_get_alert_stats(self, db, cursor):
        cursor.description = [("type",), ("count",), ("ml_count",)]
        cursor.fetchall.return_value = [("warning", 4, 1), ("critical", 2, 2)]

        stats = db.get_alert_stats(NOW)

        assert stats == {
            "total": 6,
            "by_type": {"warning": 4, "critical": 2},
            "ml_detected": 3,
        }

    def test_get_alert_stats_failure(self, db, cursor):
        cursor.execute.side_effect = Exception("timeout")

        assert db.get_alert_stats(NOW) is None

    def test_delete_resolved_alerts(self, db, cursor):
        cursor.rowcount = 7

        assert db.delete_resolved_alerts(NOW) == 7
        sql, params = cursor.execute.call_args[0]
        assert "resolved = TRUE" in sql
        assert params == (NOW,)

    def test_delete_failure(self, db, cursor):
        cursor.execute.side_effect = Exception("locked")

        assert db.delete_resolved_alerts(NOW) == 0
