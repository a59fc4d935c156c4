"""
CLI for training the analytics models from stored metric snapshots.

Usage:
    python -m src.analytics.train [options]
"""

import argparse
import logging
import os
import sys
import time

import structlog

from src.core.logger import setup_logging

from .models import AnalyticsConfig, TrainerConfig
from .trainer import ModelTrainer

logger = structlog.get_logger(__name__)


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Train anomaly, forecasting and classification models on stored snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Basic usage
        python -m src.analytics.train

        # Bigger training window, reproducible forests
        python -m src.analytics.train --limit 20000 --seed 7

        # Periodic retraining (every 30 minutes)
        python -m src.analytics.train --schedule 30
        """,
    )

    # Data configuration
    parser.add_argument(
        "--limit",
        type=int,
        default=5000,
        help="Most recent snapshots to train on (default: 5000)",
    )
    parser.add_argument(
        "--models-path",
        default=os.getenv("MODELS_PATH", "models"),
        help="Directory where the fitted predictor is written (default: models)",
    )

    # Model parameters
    parser.add_argument(
        "--num-trees",
        type=int,
        default=100,
        help="Isolation forest size (default: 100)",
    )
    parser.add_argument(
        "--epochs",
        type=int,
        default=30,
        help="Predictor training epochs (default: 30)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible models",
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
        help="PostgreSQL port (default: 5432)",
    )
    parser.add_argument(
        "--postgres-db",
        default=os.getenv("POSTGRES_DB", "mlops_db"),
        help="PostgreSQL database (default: mlops_db)",
    )
    parser.add_argument(
        "--postgres-user",
        default=os.getenv("POSTGRES_USER", "mlops"),
        help="PostgreSQL user (default: mlops)",
    )
    parser.add_argument(
        "--postgres-password",
        default=os.getenv("POSTGRES_PASSWORD", "mlops_password"),
        help="PostgreSQL password",
    )

    # Scheduling
    parser.add_argument(
        "--schedule",
        type=int,
        help="Run training periodically every N minutes (default: run once)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args) -> TrainerConfig:
    """Build configuration from arguments"""
    return TrainerConfig(
        training_limit=args.limit,
        models_path=args.models_path,
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_database=args.postgres_db,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
        analytics=AnalyticsConfig(
            num_trees=args.num_trees,
            predictor_epochs=args.epochs,
            seed=args.seed,
        ),
    )


def train_once(config: TrainerConfig) -> dict:
    """Run training once"""
    trainer = ModelTrainer(config)
    try:
        return trainer.train_all()
    finally:
        trainer.close()


def train_scheduled(config: TrainerConfig, interval_minutes: int):
    """Run training on a schedule"""
    logger.info("Starting scheduled training", interval_minutes=interval_minutes)

    iteration = 0
    while True:
        iteration += 1
        logger.info("Starting training iteration", iteration=iteration)

        try:
            stats = train_once(config)
            logger.info("Training iteration completed", iteration=iteration, stats=stats)
        except Exception as e:
            logger.error("Training iteration failed", iteration=iteration, error=str(e))

        sleep_seconds = interval_minutes * 60
        logger.info("Sleeping until next iteration", sleep_seconds=sleep_seconds)
        time.sleep(sleep_seconds)


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=getattr(logging, args.log_level))

    logger.info("Starting model training")

    try:
        config = build_config(args)

        if args.schedule:
            train_scheduled(config, args.schedule)
        else:
            stats = train_once(config)
            logger.info("Training completed successfully", stats=stats)

        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Training failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
