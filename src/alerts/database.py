"""
PostgreSQL operations for alerts.

Handles:
- Inserting and updating alerts
- Recent-alert and statistics queries
- Pruning resolved alerts past retention
"""

from datetime import datetime
from typing import Any

import structlog

from src.core.database import PostgresConnection

from .models import Alert

logger = structlog.get_logger(__name__)

ALERT_COLUMNS = [
    "alert_id",
    "type",
    "severity",
    "source",
    "process_id",
    "process_name",
    "metric",
    "message",
    "details",
    "ml_detected",
    "algorithm",
    "acknowledged",
    "acknowledged_at",
    "acknowledged_by",
    "resolved",
    "resolved_at",
    "created_at",
    "updated_at",
]


class AlertDatabase(PostgresConnection):
    """Alert store backed by the alerts table"""

    def __init__(self, host: str, port: int, database: str, user: str, password: str):
        super().__init__(host=host, port=port, database=database, user=user, password=password)

    def ensure_tables(self):
        """Create alerts table if it doesn't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS alerts (
                alert_id VARCHAR(64) PRIMARY KEY,
                type VARCHAR(16) NOT NULL,
                severity SMALLINT NOT NULL DEFAULT 5 CHECK (severity BETWEEN 1 AND 10),
                source VARCHAR(16) NOT NULL,
                process_id VARCHAR(64),
                process_name VARCHAR(255),
                metric VARCHAR(32),
                message TEXT NOT NULL,
                details JSONB,
                ml_detected BOOLEAN NOT NULL DEFAULT FALSE,
                algorithm VARCHAR(64),
                acknowledged BOOLEAN NOT NULL DEFAULT FALSE,
                acknowledged_at TIMESTAMPTZ,
                acknowledged_by VARCHAR(64),
                resolved BOOLEAN NOT NULL DEFAULT FALSE,
                resolved_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_alerts_resolved_created
            ON alerts(resolved, created_at DESC);

            CREATE INDEX IF NOT EXISTS idx_alerts_process_created
            ON alerts(process_name, created_at DESC);
        """

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query)
                logger.info("Ensured alerts table exists")
        except Exception as e:
            logger.error("Failed to create alerts table", error=str(e))

    def insert_alert(self, alert: Alert) -> bool:
        """Insert a new alert

        Returns:
            True if successful, False otherwise
        """
        query = f"""
            INSERT INTO alerts ({", ".join(ALERT_COLUMNS)})
            VALUES ({", ".join(f"%({c})s" for c in ALERT_COLUMNS)})
        """
        success = self.execute_query(query, alert.to_db_dict())
        if success:
            logger.debug("Alert inserted", alert_id=alert.alert_id, type=alert.type.value)
        return success

    def update_alert(self, alert: Alert) -> bool:
        """Persist the lifecycle fields of an alert"""
        query = """
            UPDATE alerts SET
                acknowledged = %(acknowledged)s,
                acknowledged_at = %(acknowledged_at)s,
                acknowledged_by = %(acknowledged_by)s,
                resolved = %(resolved)s,
                resolved_at = %(resolved_at)s,
                updated_at = %(updated_at)s
            WHERE alert_id = %(alert_id)s
        """
        return self.execute_query(query, alert.to_db_dict())

    def get_alert(self, alert_id: str) -> Alert | None:
        query = f"SELECT {', '.join(ALERT_COLUMNS)} FROM alerts WHERE alert_id = %s"
        try:
            rows = self.fetch_dicts(query, (alert_id,))
            return Alert.from_row(rows[0]) if rows else None
        except Exception as e:
            logger.error("Failed to load alert", alert_id=alert_id, error=str(e))
            return None

    def get_recent_alerts(self, limit: int = 50, unacknowledged_only: bool = False) -> list[Alert]:
        """Newest alerts first"""
        where = "WHERE acknowledged = FALSE" if unacknowledged_only else ""
        query = f"""
            SELECT {", ".join(ALERT_COLUMNS)}
            FROM alerts
            {where}
            ORDER BY created_at DESC
            LIMIT %s
        """
        try:
            return [Alert.from_row(row) for row in self.fetch_dicts(query, (limit,))]
        except Exception as e:
            logger.error("Failed to fetch alerts", error=str(e))
            return []

    def get_alert_stats(self, since: datetime) -> dict[str, Any] | None:
        """Alert counts by type and ML-detected count since a point in time"""
        query = """
            SELECT type, COUNT(*) AS count, COUNT(*) FILTER (WHERE ml_detected) AS ml_count
            FROM alerts
            WHERE created_at >= %s
            GROUP BY type
        """
        try:
            rows = self.fetch_dicts(query, (since,))
        except Exception as e:
            logger.error("Failed to get alert stats", error=str(e))
            return None

        by_type = {row["type"]: int(row["count"]) for row in rows}
        return {
            "total": sum(by_type.values()),
            "by_type": by_type,
            "ml_detected": sum(int(row["ml_count"]) for row in rows),
        }

    def delete_resolved_alerts(self, before: datetime) -> int:
        """Delete resolved alerts created before a cutoff

        Returns:
            Number of deleted alerts (0 on failure)
        """
        query = "DELETE FROM alerts WHERE resolved = TRUE AND created_at < %s"
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, (before,))
                return cursor.rowcount
        except Exception as e:
            logger.error("Failed to delete old alerts", error=str(e))
            return 0
