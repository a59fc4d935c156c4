"""
Analytics engine composing feature engineering, history and the three models.

One engine is built at process start and passed to whoever needs it (the
monitor loop, the trainer). Inference entry points never raise.
"""

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

import structlog

from src.generator.process_state import build_labeled_dataset

from .features import FeatureEngineer
from .history import HistoryStore
from .methods import IsolationForest, ProcessClassifier, SequencePredictor
from .models import AnalysisResult, AnalyticsConfig, AnomalyResult, Classification, ProcessSample

logger = structlog.get_logger(__name__)


def busiest_series(samples: Sequence[ProcessSample]) -> tuple[str | None, list[float]]:
    """Cpu series of the process with the most samples, in input order"""
    by_process: dict[str, list[float]] = {}
    for sample in samples:
        by_process.setdefault(sample.process_id, []).append(sample.cpu)
    if not by_process:
        return None, []
    return max(by_process.items(), key=lambda item: len(item[1]))


class AnalyticsEngine:
    """Per-sample anomaly scoring, classification and forecasting"""

    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

        self.features = FeatureEngineer()
        self.history = HistoryStore(max_size=self.config.max_history_size)
        self.anomaly_detector = IsolationForest(
            num_trees=self.config.num_trees,
            sample_size=self.config.sample_size,
            contamination=self.config.contamination,
            seed=self.config.seed,
        )
        self.predictor = SequencePredictor(
            lookback=self.config.lookback,
            hidden_units=self.config.hidden_units,
            seed=self.config.seed,
        )
        self.classifier = ProcessClassifier()

        logger.info(
            "Analytics engine initialized",
            num_trees=self.config.num_trees,
            lookback=self.config.lookback,
            history_size=self.config.max_history_size,
        )

    # ========================================
    # Training
    # ========================================

    def build_feature_matrix(self, samples: Sequence[ProcessSample]) -> list[list[float]]:
        """Engineered vectors, each computed against its process's preceding samples"""
        window = self.config.feature_window
        seen: dict[str, list[ProcessSample]] = defaultdict(list)
        matrix = []
        for sample in sorted(samples, key=lambda s: s.timestamp):
            prior = seen[sample.process_id]
            matrix.append(self.features.feature_vector(sample, prior[-window:]))
            prior.append(sample)
        return matrix

    def train_anomaly_detector(self, samples: Sequence[ProcessSample]) -> bool:
        """Fit the isolation forest; returns False (and keeps the old model) on failure"""
        if len(samples) < self.config.min_training_samples:
            logger.info(
                "Not enough samples for anomaly detector",
                samples=len(samples),
                required=self.config.min_training_samples,
            )
            return False
        try:
            self.anomaly_detector.fit(self.build_feature_matrix(samples))
            return True
        except Exception as e:
            logger.error("Failed to train anomaly detector", error=str(e), exc_info=True)
            return False

    def train_predictor(self, series: Sequence[float]) -> bool:
        """Fit the sequence predictor on a cpu series"""
        if len(series) < self.config.min_training_samples:
            logger.info(
                "Not enough points for predictor",
                points=len(series),
                required=self.config.min_training_samples,
            )
            return False
        try:
            self.predictor.train(
                series,
                epochs=self.config.predictor_epochs,
                batch_size=self.config.predictor_batch_size,
            )
            return True
        except Exception as e:
            logger.error("Failed to train predictor", error=str(e), exc_info=True)
            return False

    def train_classifier(self, examples: Sequence[tuple[Any, str]] | None = None) -> bool:
        """Fit the workload classifier, on synthetic archetypes when no examples are given"""
        if examples is None:
            examples = build_labeled_dataset(samples_per_class=20, seed=self.config.seed)
        try:
            self.classifier.train(examples)
            return True
        except Exception as e:
            logger.error("Failed to train classifier", error=str(e), exc_info=True)
            return False

    def initialize(
        self,
        samples: Sequence[ProcessSample],
        labeled_examples: Sequence[tuple[Any, str]] | None = None,
    ) -> dict[str, bool]:
        """Train all three models from historical samples

        The predictor learns from the cpu series of the process with the most
        samples, since forecasts run over a single process's history.
        """
        logger.info("Initializing models", samples=len(samples))
        process_id, series = busiest_series(samples)
        logger.debug("Predictor series selected", process_id=process_id, points=len(series))

        results = {
            "anomaly_detector": self.train_anomaly_detector(samples),
            "predictor": self.train_predictor(series),
            "classifier": self.train_classifier(labeled_examples),
        }

        logger.info("Model initialization finished", **results)
        return results

    # ========================================
    # Inference
    # ========================================

    def detect_anomaly(self, vector: Sequence[float]) -> AnomalyResult:
        try:
            score = self.anomaly_detector.predict(vector)
        except Exception as e:
            logger.error("Anomaly detection error", error=str(e))
            score = 0.0
        return AnomalyResult.from_score(
            score,
            warning=self.config.anomaly_warning_threshold,
            critical=self.config.anomaly_critical_threshold,
        )

    def classify(self, process: Any) -> Classification:
        try:
            return self.classifier.predict(process)
        except Exception as e:
            logger.error("Classification error", error=str(e))
            return Classification()

    def predict_future(self, process_id: str, steps: int | None = None) -> list[float] | None:
        """Forecast the next cpu values of a process

        Returns None while the predictor is untrained or the process has fewer
        than lookback history points.
        """
        if steps is None:
            steps = self.config.forecast_steps
        try:
            if not self.predictor.trained:
                return None
            lookback = self.config.lookback
            if self.history.size(process_id) < lookback:
                return None
            cpu_history = self.history.values(process_id, "cpu", lookback)
            return self.predictor.predict_multi_step(cpu_history, steps)
        except Exception as e:
            logger.debug("Forecast failed", process_id=process_id, error=str(e))
            return None

    def analyze(self, sample: ProcessSample) -> AnalysisResult:
        """Run every model on one sample and record it in the history"""
        prior = self.history.window(sample.process_id, self.config.feature_window)
        vector = self.features.feature_vector(sample, prior)

        anomaly = self.detect_anomaly(vector)
        classification = self.classify(sample)

        self.history.append(sample.process_id, sample.snapshot())
        predictions = self.predict_future(sample.process_id)

        return AnalysisResult(
            anomaly=anomaly,
            classification=classification,
            predictions=predictions,
        )

    def get_model_status(self) -> dict[str, dict[str, Any]]:
        return {
            "anomaly_detector": {
                "trained": self.anomaly_detector.trained,
                "num_trees": self.anomaly_detector.num_trees,
            },
            "predictor": {
                "trained": self.predictor.trained,
                "input_shape": self.predictor.lookback,
            },
            "classifier": {
                "trained": self.classifier.trained,
                "classes": list(self.classifier.classes),
            },
        }
