"""
Main process generator publishing per-process and system-wide metrics.
"""

import json
import random
import time
from datetime import UTC, datetime
from typing import Any

import structlog
from kafka import KafkaProducer

from .models import GeneratorConfig
from .process_state import ProcessState

logger = structlog.get_logger(__name__)


class ProcessGenerator:
    """Simulates a host running a set of processes and publishes their telemetry"""

    def __init__(self, config: GeneratorConfig):
        self.config = config
        logger.info("Initializing process generator", config=config)

        try:
            self.producer = KafkaProducer(
                bootstrap_servers=config.kafka_bootstrap_servers,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                compression_type="gzip",
            )
            logger.info(
                "Kafka producer initialized",
                bootstrap_servers=config.kafka_bootstrap_servers,
                topic=config.kafka_topic,
            )
        except Exception as e:
            logger.error("Failed to initialize Kafka producer", error=str(e))
            raise

        self.processes: list[ProcessState] = []
        for i in range(config.num_processes):
            workload = config.workloads[i % len(config.workloads)]
            self.processes.append(ProcessState(pid=1000 + i, workload=workload))

        logger.info(
            "Processes initialized",
            count=len(self.processes),
            workloads=[w.value for w in config.workloads],
        )
        logger.info(
            "Anomaly configuration",
            probability=config.anomaly_probability,
            enabled_anomalies=[a.value for a in config.enabled_anomalies],
        )

    def system_metrics(self, process_metrics: list[dict[str, Any]]) -> dict[str, Any]:
        """Aggregate one round of process metrics into a host-level message"""
        total_cpu = sum(m["cpu"] for m in process_metrics)
        total_memory = sum(m["memory"] for m in process_metrics)

        return {
            "type": "system_metric",
            "timestamp": datetime.now(UTC).isoformat(),
            "cpu": {
                "usage": round(min(100.0, total_cpu / self.config.num_cores), 2),
                "cores": self.config.num_cores,
            },
            "memory": {
                "total": self.config.total_memory_mb,
                "used": round(total_memory, 1),
                "usage": round(min(100.0, total_memory / self.config.total_memory_mb * 100), 2),
            },
            "disk": {
                "usage": round(self.config.disk_usage_percent + random.uniform(-1, 1), 2),
            },
        }

    def generate_event(self) -> int:
        """Publish one round: a reading per process, then the host summary.

        Returns the number of anomalies injected in this round.
        """
        round_metrics = []
        injected = 0

        for process in self.processes:
            anomaly = None
            if self.config.enabled_anomalies and random.random() < self.config.anomaly_probability:
                anomaly = random.choice(self.config.enabled_anomalies)

            metrics = process.generate_metrics(inject_anomaly=anomaly)
            round_metrics.append(metrics)
            self.producer.send(self.config.kafka_topic, value=metrics)

            if anomaly:
                injected += 1
                logger.warning(
                    "Anomaly injected",
                    anomaly_type=anomaly.value,
                    pid=process.pid,
                    name=process.name,
                    workload=process.workload.value,
                )

        self.producer.send(self.config.kafka_topic, value=self.system_metrics(round_metrics))
        self.producer.flush()
        return injected

    def run(self, duration_seconds: float | None = None):
        """Publish rounds every event_interval_seconds until stopped or out of time"""
        logger.info(
            "Starting generator",
            topic=self.config.kafka_topic,
            processes=len(self.processes),
            duration=duration_seconds if duration_seconds else "indefinite",
        )

        stats = {"rounds": 0, "messages": 0, "anomalies": 0}
        started = time.time()
        last_report = started

        try:
            while True:
                stats["anomalies"] += self.generate_event()
                stats["rounds"] += 1
                stats["messages"] += len(self.processes) + 1

                now = time.time()
                elapsed = now - started
                if now - last_report >= self.config.stats_interval_seconds:
                    logger.info(
                        "Generator stats",
                        **stats,
                        rate_per_sec=round(stats["messages"] / elapsed, 1) if elapsed else 0,
                    )
                    last_report = now

                if duration_seconds and elapsed >= duration_seconds:
                    logger.info("Duration limit reached", duration_seconds=duration_seconds)
                    break

                time.sleep(self.config.event_interval_seconds)

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, stopping generator")

        except Exception as e:
            logger.error("Generator error", error=str(e), exc_info=True)
            raise

        finally:
            self.producer.close()
            logger.info("Generator stopped", **stats, elapsed_sec=round(time.time() - started, 1))

        return stats
