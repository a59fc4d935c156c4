"""
Tick-driven process monitor.

Each tick polls a bounded batch of telemetry from Kafka, evaluates the newest
reading of every process in a thread pool (analysis, alert rules, snapshot
buffering) and checks host-wide thresholds.
"""

import json
import threading
import time
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import structlog
from kafka import KafkaConsumer

from src.alerts.cooldown import CooldownMap, RedisCooldownMap
from src.alerts.database import AlertDatabase
from src.alerts.engine import AlertEngine
from src.analytics.collector import MetricsCollector
from src.analytics.database import MetricsDatabase
from src.analytics.models import ProcessSample
from src.analytics.service import AnalyticsEngine, busiest_series
from src.analytics.trainer import PREDICTOR_FILENAME, samples_from_frame

from .models import MonitorConfig

logger = structlog.get_logger(__name__)


def _ts(message: dict[str, Any]) -> str:
    return str(message.get("timestamp") or "")


def latest_messages(records: dict) -> tuple[dict[str, dict[str, Any]], dict[str, Any] | None]:
    """Newest process_metric per process and newest system_metric of a poll result"""
    processes: dict[str, dict[str, Any]] = {}
    system = None
    for partition_records in records.values():
        for record in partition_records:
            message = record.value
            if not isinstance(message, dict):
                continue
            msg_type = message.get("type")
            if msg_type == "process_metric":
                key = str(message.get("process_id") or message.get("pid"))
                if key not in processes or _ts(message) >= _ts(processes[key]):
                    processes[key] = message
            elif msg_type == "system_metric":
                if system is None or _ts(message) >= _ts(system):
                    system = message
    return processes, system


class ProcessMonitor:
    """Consumes process telemetry from Kafka and drives analytics and alerting"""

    def __init__(
        self,
        config: MonitorConfig,
        analytics: AnalyticsEngine | None = None,
        alert_engine: AlertEngine | None = None,
        collector: MetricsCollector | None = None,
        metrics_db=None,
    ):
        self.config = config
        logger.info("Initializing process monitor", topic=config.kafka_topic)

        self._owned = []
        if metrics_db is None and (collector is None or config.warmup_training):
            metrics_db = MetricsDatabase(**self._postgres_params())
            metrics_db.ensure_tables()
            self._owned.append(metrics_db)
        self.metrics_db = metrics_db

        if alert_engine is None:
            alert_db = AlertDatabase(**self._postgres_params())
            if not alert_db.check_health():
                raise RuntimeError("Database health check failed")
            alert_db.ensure_tables()
            self._owned.append(alert_db)
            alert_engine = AlertEngine(alert_db, config.alerts, cooldowns=self._build_cooldowns())
        self.alert_engine = alert_engine

        self.analytics = analytics or AnalyticsEngine(config.analytics)
        self.collector = collector or MetricsCollector(self.metrics_db, batch_size=config.batch_size)

        try:
            self.consumer = KafkaConsumer(
                config.kafka_topic,
                bootstrap_servers=config.kafka_bootstrap_servers,
                group_id=config.kafka_group_id,
                auto_offset_reset=config.kafka_auto_offset_reset,
                enable_auto_commit=False,
                value_deserializer=lambda m: json.loads(m.decode("utf-8")),
            )
            logger.info(
                "Kafka consumer initialized",
                bootstrap_servers=config.kafka_bootstrap_servers,
                topic=config.kafka_topic,
                group_id=config.kafka_group_id,
            )
        except Exception as e:
            logger.error("Failed to initialize Kafka consumer", error=str(e))
            raise

        self.executor = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="process-eval"
        )

        self._stats_lock = threading.Lock()
        self.stats = {
            "ticks": 0,
            "messages": 0,
            "processes_evaluated": 0,
            "system_checks": 0,
            "alerts": 0,
            "errors": 0,
        }

    def _count(self, name: str, amount: int = 1):
        with self._stats_lock:
            self.stats[name] += amount

    def _postgres_params(self) -> dict[str, Any]:
        return {
            "host": self.config.postgres_host,
            "port": self.config.postgres_port,
            "database": self.config.postgres_database,
            "user": self.config.postgres_user,
            "password": self.config.postgres_password,
        }

    def _build_cooldowns(self):
        period = self.config.alerts.cooldown_seconds
        if self.config.redis_host:
            return RedisCooldownMap(
                host=self.config.redis_host,
                port=self.config.redis_port,
                period_seconds=period,
            )
        return CooldownMap(period_seconds=period)

    def bootstrap_models(self) -> dict[str, bool]:
        """Train what can be trained before the first tick.

        The classifier always learns from the synthetic workload archetypes;
        the detector and predictor need warm-up data.
        """
        results = {"classifier": self.analytics.train_classifier()}
        if self.config.warmup_training:
            results.update(self.warmup())
        return results

    def warmup(self) -> dict[str, bool]:
        """Fit the detector and predictor from stored snapshots.

        A predictor saved by the trainer under models_path is loaded instead
        of being refitted from the snapshot store.
        """
        df = self.metrics_db.query_training_data(limit=self.config.warmup_limit)
        samples = samples_from_frame(df)
        logger.info("Warm-up training", samples=len(samples))

        results = {
            "anomaly_detector": self.analytics.train_anomaly_detector(samples),
            "predictor": self._load_predictor(),
        }
        if not results["predictor"]:
            _, series = busiest_series(samples)
            results["predictor"] = self.analytics.train_predictor(series)

        logger.info("Warm-up finished", **results)
        return results

    def _load_predictor(self) -> bool:
        path = Path(self.config.models_path) / PREDICTOR_FILENAME
        if not path.exists():
            return False
        try:
            self.analytics.predictor.load(path)
        except Exception as e:
            logger.warning("Saved predictor unusable, refitting", path=str(path), error=str(e))
            return False
        return True

    def evaluate(self, message: dict[str, Any]) -> list:
        """Analyze one process reading and run its alert rules"""
        try:
            sample = ProcessSample.from_message(message)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed process message", error=str(e))
            self._count("errors")
            return []

        try:
            analysis = self.analytics.analyze(sample)
            alerts = self.alert_engine.check_process_thresholds(sample, analysis)
            self.collector.add(sample, analysis)
        except Exception as e:
            logger.error(
                "Process evaluation failed",
                process_id=sample.process_id,
                error=str(e),
                exc_info=True,
            )
            self._count("errors")
            return []

        self._count("processes_evaluated")
        return alerts

    def tick(self) -> list:
        """Poll one batch and evaluate it; returns the alerts raised"""
        self._count("ticks")
        records = self.consumer.poll(
            timeout_ms=self.config.poll_timeout_ms, max_records=self.config.max_processes
        )
        self._count("messages", sum(len(batch) for batch in records.values()))

        processes, system = latest_messages(records)

        alerts = []
        for result in self.executor.map(self.evaluate, processes.values()):
            alerts.extend(result)

        if system is not None:
            self._count("system_checks")
            alerts.extend(self.alert_engine.check_system_thresholds(system))

        if records:
            self.consumer.commit()

        self._count("alerts", len(alerts))
        return alerts

    def run(self, duration_seconds: int = None):
        """Run the tick loop continuously or for a specified duration

        Args:
            duration_seconds: Optional duration in seconds. If None, runs indefinitely.
        """
        logger.info(
            "Starting process monitor",
            tick_interval=self.config.tick_interval_seconds,
            duration=duration_seconds if duration_seconds else "indefinite",
        )

        self.bootstrap_models()

        start_time = time.time()
        last_log_time = start_time

        try:
            while True:
                tick_start = time.time()
                self.tick()

                elapsed = time.time() - start_time
                if time.time() - last_log_time >= self.config.stats_interval_seconds:
                    logger.info(
                        "Monitor stats",
                        **self.stats,
                        models=self.analytics.get_model_status(),
                        elapsed_sec=round(elapsed, 1),
                    )
                    last_log_time = time.time()

                if duration_seconds and elapsed >= duration_seconds:
                    logger.info("Duration limit reached", duration_seconds=duration_seconds)
                    break

                remaining = self.config.tick_interval_seconds - (time.time() - tick_start)
                if remaining > 0:
                    time.sleep(remaining)

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, stopping monitor")

        except Exception as e:
            logger.error("Monitor error", error=str(e), exc_info=True)
            raise

        finally:
            self.close()

    def close(self):
        """Finish in-flight evaluations, flush snapshots and release resources"""
        self.executor.shutdown(wait=True)
        self.collector.flush()
        self.consumer.close()
        for db in self._owned:
            db.close()
        logger.info("Monitor stopped", **self.stats)
