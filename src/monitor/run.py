"""
Process Monitor - CLI Entry Point
Consumes process telemetry from Kafka, analyzes it and raises alerts
"""

import argparse
import logging
import os
import sys

import structlog

from src.alerts.models import AlertConfig
from src.analytics.models import AnalyticsConfig
from src.core.logger import setup_logging
from src.monitor.models import MonitorConfig
from src.monitor.monitor import ProcessMonitor

logger = structlog.get_logger(__name__)


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Process monitor: Kafka telemetry → analytics → alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Basic usage with defaults
        python -m src.monitor.run

        # Train from stored snapshots first, share cooldowns through Redis
        python -m src.monitor.run --warmup --redis-host redis

        # Faster ticks, more workers, stop after 5 minutes
        python -m src.monitor.run --tick-interval 1 --workers 8 --duration 300
        """,
    )

    # Kafka settings
    parser.add_argument(
        "--kafka-servers",
        default=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
        help="Kafka bootstrap servers (default: localhost:9092 or KAFKA_BOOTSTRAP_SERVERS env var)",
    )
    parser.add_argument(
        "--topic",
        default=os.getenv("KAFKA_TOPIC", "process-metrics"),
        help="Kafka topic name (default: process-metrics or KAFKA_TOPIC env var)",
    )
    parser.add_argument(
        "--group-id",
        default="process-monitor-group",
        help="Kafka consumer group ID (default: process-monitor-group)",
    )
    parser.add_argument(
        "--offset-reset",
        choices=["earliest", "latest"],
        default="latest",
        help="Auto offset reset strategy (default: latest)",
    )

    # PostgreSQL settings
    parser.add_argument(
        "--postgres-host",
        default=os.getenv("POSTGRES_HOST", "localhost"),
        help="PostgreSQL host (default: localhost or POSTGRES_HOST env var)",
    )
    parser.add_argument(
        "--postgres-port",
        type=int,
        default=int(os.getenv("POSTGRES_PORT", "5432")),
        help="PostgreSQL port (default: 5432 or POSTGRES_PORT env var)",
    )
    parser.add_argument(
        "--postgres-db",
        default=os.getenv("POSTGRES_DB", "mlops_db"),
        help="PostgreSQL database (default: mlops_db or POSTGRES_DB env var)",
    )
    parser.add_argument(
        "--postgres-user",
        default=os.getenv("POSTGRES_USER", "mlops"),
        help="PostgreSQL user (default: mlops or POSTGRES_USER env var)",
    )
    parser.add_argument(
        "--postgres-password",
        default=os.getenv("POSTGRES_PASSWORD", "mlops_password"),
        help="PostgreSQL password (default: mlops_password or POSTGRES_PASSWORD env var)",
    )

    # Redis settings
    parser.add_argument(
        "--redis-host",
        default=os.getenv("REDIS_HOST"),
        help="Redis host for shared alert cooldowns (default: in-memory cooldowns)",
    )

    # Loop behavior
    parser.add_argument(
        "--tick-interval",
        type=float,
        default=2.0,
        help="Seconds between evaluation ticks (default: 2.0)",
    )
    parser.add_argument(
        "--max-processes",
        type=int,
        default=50,
        help="Max records polled per tick (default: 50)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Parallel process evaluations (default: 4)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Metric snapshots per database write (default: 10)",
    )
    parser.add_argument(
        "--cooldown",
        type=float,
        default=60.0,
        help="Seconds between two alerts with the same key (default: 60)",
    )
    parser.add_argument(
        "--warmup",
        action="store_true",
        help="Fit the anomaly detector and predictor from stored snapshots before consuming",
    )
    parser.add_argument(
        "--models-path",
        default=os.getenv("MODELS_PATH", "models"),
        help="Directory holding a predictor saved by the trainer (default: models)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible models",
    )

    # Runtime settings
    parser.add_argument(
        "--duration",
        type=int,
        help="Duration to run in seconds (default: infinite)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )

    return parser.parse_args(argv)


def build_config_from_args(args) -> MonitorConfig:
    """Build a MonitorConfig from command-line arguments"""
    config = MonitorConfig(
        kafka_bootstrap_servers=args.kafka_servers,
        kafka_topic=args.topic,
        kafka_group_id=args.group_id,
        kafka_auto_offset_reset=args.offset_reset,
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_database=args.postgres_db,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
        redis_host=args.redis_host,
        tick_interval_seconds=args.tick_interval,
        max_processes=args.max_processes,
        max_workers=args.workers,
        batch_size=args.batch_size,
        warmup_training=args.warmup,
        models_path=args.models_path,
        analytics=AnalyticsConfig(seed=args.seed),
        alerts=AlertConfig(cooldown_seconds=args.cooldown),
    )

    logger.info("Configuration built from arguments", topic=config.kafka_topic)
    return config


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=getattr(logging, args.log_level))

    logger.info("Starting Process Monitor")

    try:
        config = build_config_from_args(args)

        monitor = ProcessMonitor(config)
        monitor.run(duration_seconds=args.duration)

        logger.info("Monitor completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Monitor failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
