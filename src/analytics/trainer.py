"""
Batch trainer for the analytics models.

Rebuilds samples from the metric snapshot store, retrains the engine's
models and records their metadata.
"""

import time
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import structlog

from .database import MetricsDatabase
from .models import ProcessSample, TrainerConfig
from .service import AnalyticsEngine, busiest_series

logger = structlog.get_logger(__name__)

PREDICTOR_FILENAME = "sequence_predictor.joblib"

NAME_LABELS = [
    (("nginx", "apache", "httpd"), "web-server"),
    (("postgres", "mysql", "mongo"), "database"),
    (("redis", "memcache"), "cache"),
]


def label_from_name(name: str, cpu: float) -> str:
    """Heuristic workload label derived from a process name"""
    lowered = (name or "").lower()
    for keywords, label in NAME_LABELS:
        if any(keyword in lowered for keyword in keywords):
            return label
    if "python" in lowered and cpu > 50:
        return "ml-training"
    if "system" in lowered or "kernel" in lowered:
        return "system"
    return "application"


def samples_from_frame(df: pd.DataFrame) -> list[ProcessSample]:
    """Rebuild ProcessSample objects from snapshot rows, skipping malformed ones"""
    samples = []
    for row in df.to_dict("records"):
        row["name"] = row.pop("process_name", None)
        try:
            samples.append(ProcessSample.from_message(row))
        except (TypeError, ValueError) as e:
            logger.debug("Skipping malformed snapshot row", error=str(e))
    return samples


class ModelTrainer:
    """Trains the analytics engine's models on stored snapshots"""

    def __init__(self, config: TrainerConfig, engine: AnalyticsEngine | None = None, db=None):
        self.config = config
        self.engine = engine or AnalyticsEngine(config.analytics)

        self.db = db or MetricsDatabase(
            host=config.postgres_host,
            port=config.postgres_port,
            database=config.postgres_database,
            user=config.postgres_user,
            password=config.postgres_password,
        )
        if not self.db.check_health():
            raise RuntimeError("Database health check failed")

        logger.info(
            "Trainer initialized",
            training_limit=config.training_limit,
            models_path=config.models_path,
        )

    def train_all(self) -> dict[str, Any]:
        """Train all models

        Returns:
            Dictionary with training statistics
        """
        logger.info("Starting training for all models")
        start_time = time.time()

        stats: dict[str, Any] = {
            "samples": 0,
            "anomaly_detector": None,
            "predictor": None,
            "classifier": None,
        }

        df = self.db.query_training_data(limit=self.config.training_limit)
        samples = samples_from_frame(df)
        stats["samples"] = len(samples)

        if len(samples) < self.config.min_samples:
            logger.warning(
                "Insufficient data, skipping training",
                samples=len(samples),
                required=self.config.min_samples,
            )
            return stats

        stats["anomaly_detector"] = self.train_anomaly_detector(samples)
        stats["predictor"] = self.train_predictor(samples)
        stats["classifier"] = self.train_classifier(samples)

        stats["elapsed_sec"] = round(time.time() - start_time, 1)
        logger.info("Training completed", **stats)
        return stats

    def train_anomaly_detector(self, samples: list[ProcessSample]) -> dict | None:
        if not self.engine.train_anomaly_detector(samples):
            return None

        matrix = self.engine.build_feature_matrix(samples[:10])
        scores = [self.engine.anomaly_detector.predict(vector) for vector in matrix]
        result = {
            "samples": len(samples),
            "mean_score": float(np.mean(scores)) if scores else 0.0,
        }
        self._save_metadata("anomaly_detector", "isolation_forest", {
            **self.engine.anomaly_detector.get_config(),
            **result,
        })
        return result

    def train_predictor(self, samples: list[ProcessSample]) -> dict | None:
        """Fit on the cpu series of the process with the most snapshots"""
        process_id, series = busiest_series(samples)
        series = series[-self.config.predictor_points:]
        if len(series) < self.config.min_samples:
            logger.info(
                "Not enough points for predictor",
                process_id=process_id,
                points=len(series),
                required=self.config.min_samples,
            )
            return None

        if not self.engine.train_predictor(series):
            return None

        path = Path(self.config.models_path) / PREDICTOR_FILENAME
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self.engine.predictor.save(path)
        except OSError as e:
            logger.warning("Predictor trained but failed to save", path=str(path), error=str(e))

        result = {"process_id": process_id, "points": len(series), "path": str(path)}
        self._save_metadata("sequence_predictor", "mlp_regressor", {
            **self.engine.predictor.get_config(),
            **result,
        })
        return result

    def train_classifier(self, samples: list[ProcessSample]) -> dict | None:
        """Fit on name-heuristic labels, reporting accuracy on the first 20"""
        examples = [(s, label_from_name(s.name, s.cpu)) for s in samples]
        if not self.engine.train_classifier(examples):
            return None

        holdout = examples[:20]
        correct = sum(
            1 for sample, label in holdout if self.engine.classifier.predict(sample).label == label
        )
        result = {
            "examples": len(examples),
            "accuracy": correct / len(holdout) if holdout else 0.0,
        }
        self._save_metadata("process_classifier", "random_forest", {
            **self.engine.classifier.get_config(),
            **result,
        })
        return result

    def _save_metadata(self, name: str, model_type: str, metadata: dict) -> None:
        if not self.db.save_model_metadata(name, model_type, metadata):
            logger.warning("Failed to save model metadata", model=name)

    def close(self):
        """Clean up resources"""
        self.db.close()
        logger.info("Trainer closed")
