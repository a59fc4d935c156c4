"""
Process Telemetry Generator - CLI Entry Point
Simulates per-process resource usage with configurable anomalies
"""

import argparse
import logging
import os
import sys

import structlog

from src.core.logger import setup_logging
from src.generator import (
    CHAOS_CONFIG,
    CPU_PRESSURE_CONFIG,
    DEV_CONFIG,
    IO_HEAVY_CONFIG,
    NORMAL_CONFIG,
    GeneratorConfig,
    ProcessAnomalyType,
    ProcessGenerator,
    WorkloadType,
)

logger = structlog.get_logger(__name__)


# Predefined configurations
CONFIGS = {
    "normal": NORMAL_CONFIG,
    "chaos": CHAOS_CONFIG,
    "cpu": CPU_PRESSURE_CONFIG,
    "io": IO_HEAVY_CONFIG,
    "dev": DEV_CONFIG,
}


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Process Telemetry Generator for Kafka",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
            Examples:
            # Use predefined normal config
            python -m src.generator.generate --config normal

            # Use chaos config for 300 seconds
            python -m src.generator.generate --config chaos --duration 300

            # Custom configuration
            python -m src.generator.generate --processes 40 --anomaly-prob 0.05

            # Only databases and caches
            python -m src.generator.generate --workloads database cache
        """,
    )

    parser.add_argument(
        "--config", choices=list(CONFIGS.keys()), help="Use a predefined configuration"
    )

    # Kafka settings
    parser.add_argument(
        "--kafka-servers",
        default=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
        help="Kafka bootstrap servers (default: localhost:9092)",
    )
    parser.add_argument(
        "--topic",
        default=os.getenv("KAFKA_TOPIC", "process-metrics"),
        help="Kafka topic name (default: process-metrics)",
    )

    # Generation settings
    parser.add_argument("--processes", type=int, help="Number of processes to simulate")
    parser.add_argument("--interval", type=float, help="Interval between rounds in seconds")
    parser.add_argument(
        "--workloads",
        nargs="+",
        choices=[w.value for w in WorkloadType],
        help="Workload archetypes to simulate",
    )

    # Anomaly settings
    parser.add_argument(
        "--anomaly-prob", type=float, help="Probability of anomaly injection (0.0 to 1.0)"
    )
    parser.add_argument(
        "--anomalies",
        nargs="+",
        choices=[a.value for a in ProcessAnomalyType],
        help="Specific anomaly types to enable",
    )

    parser.add_argument(
        "--duration", type=float, help="Duration to run in seconds (default: infinite)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config_from_args(args) -> GeneratorConfig:
    """Build a GeneratorConfig from command-line arguments"""

    if args.config:
        config = CONFIGS[args.config]
        logger.info("Using predefined configuration", config_name=args.config)
    else:
        config = GeneratorConfig()
        logger.info("Using default configuration")

    if args.kafka_servers:
        config.kafka_bootstrap_servers = args.kafka_servers
    if args.topic:
        config.kafka_topic = args.topic
    if args.processes:
        config.num_processes = args.processes
    if args.interval:
        config.event_interval_seconds = args.interval
    if args.workloads:
        config.workloads = [WorkloadType(w) for w in args.workloads]
    if args.anomaly_prob is not None:
        config.anomaly_probability = args.anomaly_prob
    if args.anomalies:
        config.enabled_anomalies = [ProcessAnomalyType(a) for a in args.anomalies]

    return config


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=getattr(logging, args.log_level))

    logger.info("Starting Process Telemetry Generator")

    try:
        config = build_config_from_args(args)
        generator = ProcessGenerator(config)
        generator.run(duration_seconds=args.duration)

        logger.info("Generator completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Generator failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
