"""
PostgreSQL operations for process metric snapshots and model metadata.

Handles:
- Batch insertion of metric snapshots (with their ML analysis)
- Querying history and training data as DataFrames
- Upserting trained-model metadata
"""

import json
from datetime import UTC, datetime
from typing import Any

import pandas as pd
import psycopg2.extras
import structlog

from src.core.database import PostgresConnection

logger = structlog.get_logger(__name__)

METRIC_COLUMNS = [
    "timestamp",
    "process_id",
    "process_name",
    "pid",
    "cpu",
    "memory",
    "threads",
    "io_read",
    "io_write",
    "network_sent",
    "network_received",
]


class MetricsDatabase(PostgresConnection):
    """Database operations for metric snapshots"""

    def __init__(self, host: str, port: int, database: str, user: str, password: str):
        super().__init__(host=host, port=port, database=database, user=user, password=password)

    def ensure_tables(self):
        """Create process_metrics and ml_models tables if they don't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS process_metrics (
                id BIGSERIAL PRIMARY KEY,
                timestamp TIMESTAMPTZ NOT NULL,
                process_id VARCHAR(64) NOT NULL,
                process_name VARCHAR(255),
                pid INTEGER,
                cpu DOUBLE PRECISION,
                memory DOUBLE PRECISION,
                threads INTEGER,
                io_read DOUBLE PRECISION,
                io_write DOUBLE PRECISION,
                network_sent DOUBLE PRECISION,
                network_received DOUBLE PRECISION,
                anomaly_score DOUBLE PRECISION,
                is_anomaly BOOLEAN,
                classification VARCHAR(32),
                confidence DOUBLE PRECISION,
                predictions JSONB
            );

            CREATE INDEX IF NOT EXISTS idx_process_metrics_process_time
            ON process_metrics(process_id, timestamp DESC);

            CREATE TABLE IF NOT EXISTS ml_models (
                name VARCHAR(64) PRIMARY KEY,
                model_type VARCHAR(32) NOT NULL,
                metadata JSONB,
                last_trained TIMESTAMPTZ NOT NULL,
                version BIGINT NOT NULL
            );
        """

        try:
            with self.get_cursor() as cursor:
                cursor.execute(query)
                logger.info("Ensured process_metrics and ml_models tables exist")
        except Exception as e:
            logger.error("Failed to create metrics tables", error=str(e))

    @staticmethod
    def _flatten(record: dict[str, Any]) -> dict[str, Any]:
        metrics = record.get("metrics", {})
        analysis = record.get("ml_analysis") or {}
        return {
            "timestamp": record["timestamp"],
            "process_id": record["process_id"],
            "process_name": record.get("process_name"),
            "pid": record.get("pid"),
            "cpu": metrics.get("cpu", 0.0),
            "memory": metrics.get("memory", 0.0),
            "threads": metrics.get("threads", 1),
            "io_read": metrics.get("io_read", 0.0),
            "io_write": metrics.get("io_write", 0.0),
            "network_sent": metrics.get("network_sent", 0.0),
            "network_received": metrics.get("network_received", 0.0),
            "anomaly_score": analysis.get("anomaly_score"),
            "is_anomaly": analysis.get("is_anomaly"),
            "classification": analysis.get("classification"),
            "confidence": analysis.get("confidence"),
            "predictions": json.dumps(analysis.get("predictions") or []),
        }

    def insert_batch_metrics(self, records: list[dict[str, Any]]) -> int:
        """Batch insert metric snapshot records

        Returns:
            Number of rows inserted (0 on failure)
        """
        if not records:
            return 0

        query = """
            INSERT INTO process_metrics (
                timestamp, process_id, process_name, pid, cpu, memory, threads,
                io_read, io_write, network_sent, network_received,
                anomaly_score, is_anomaly, classification, confidence, predictions
            ) VALUES (
                %(timestamp)s, %(process_id)s, %(process_name)s, %(pid)s, %(cpu)s,
                %(memory)s, %(threads)s, %(io_read)s, %(io_write)s, %(network_sent)s,
                %(network_received)s, %(anomaly_score)s, %(is_anomaly)s,
                %(classification)s, %(confidence)s, %(predictions)s
            )
        """
        try:
            rows = [self._flatten(record) for record in records]
            with self.get_cursor() as cursor:
                psycopg2.extras.execute_batch(cursor, query, rows, page_size=100)
            return len(rows)
        except Exception as e:
            logger.error("Failed to batch insert metrics", count=len(records), error=str(e))
            return 0

    def _query_frame(self, query: str, params: Any, **context) -> pd.DataFrame:
        try:
            rows = self.fetch_dicts(query, params)
            df = pd.DataFrame(rows, columns=METRIC_COLUMNS)
            logger.debug("Queried metric snapshots", rows=len(df), **context)
            return df
        except Exception as e:
            logger.error("Failed to query metric snapshots", error=str(e), **context)
            return pd.DataFrame(columns=METRIC_COLUMNS)

    def query_training_data(self, limit: int = 10000) -> pd.DataFrame:
        """Most recent snapshots across all processes, oldest first"""
        query = f"""
            SELECT * FROM (
                SELECT {", ".join(METRIC_COLUMNS)}
                FROM process_metrics
                ORDER BY timestamp DESC
                LIMIT %s
            ) recent
            ORDER BY timestamp
        """
        return self._query_frame(query, (limit,), limit=limit)

    def get_history(self, process_id: str, limit: int = 100) -> pd.DataFrame:
        """Most recent snapshots of one process, newest first"""
        query = f"""
            SELECT {", ".join(METRIC_COLUMNS)}
            FROM process_metrics
            WHERE process_id = %s
            ORDER BY timestamp DESC
            LIMIT %s
        """
        return self._query_frame(query, (process_id, limit), process_id=process_id)

    def save_model_metadata(self, name: str, model_type: str, metadata: dict[str, Any]) -> bool:
        """Upsert metadata of a trained model"""
        now = datetime.now(UTC)
        return self.execute_query(
            """
            INSERT INTO ml_models (name, model_type, metadata, last_trained, version)
            VALUES (%(name)s, %(model_type)s, %(metadata)s, %(last_trained)s, %(version)s)
            ON CONFLICT (name)
            DO UPDATE SET
                model_type = EXCLUDED.model_type,
                metadata = EXCLUDED.metadata,
                last_trained = EXCLUDED.last_trained,
                version = EXCLUDED.version
            """,
            {
                "name": name,
                "model_type": model_type,
                "metadata": json.dumps(metadata, default=str),
                "last_trained": now,
                "version": int(now.timestamp() * 1000),
            },
        )
