"""
Workload classification of processes with a random forest.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import structlog
from sklearn.ensemble import RandomForestClassifier

from ..models import Classification
from .base import AnalyticsModel

logger = structlog.get_logger(__name__)

CLASSES = ("web-server", "database", "application", "cache", "ml-training", "system")

CLASSIFIER_FEATURES = [
    "cpu",
    "memory",
    "threads",
    "priority",
    "io_read",
    "io_write",
    "network_sent",
    "network_received",
]


def extract_features(process: Any) -> list[float]:
    """8-dimensional vector from a metrics mapping or a ProcessSample"""
    if isinstance(process, Mapping):
        get = process.get
    else:
        def get(name):
            return getattr(process, name, None)

    values = []
    for name in CLASSIFIER_FEATURES:
        default = 1.0 if name == "threads" else 0.0
        values.append(float(get(name) or default))
    return values


class ProcessClassifier(AnalyticsModel):
    """Maps process metrics to one of CLASSES"""

    def __init__(self, n_estimators: int = 100, max_features: float = 0.8, seed: int = 42):
        super().__init__()
        self.classes = list(CLASSES)
        self.n_estimators = n_estimators
        self.max_features = max_features
        self.seed = seed
        self.model = None

    @property
    def name(self) -> str:
        return "process_classifier"

    def get_config(self) -> dict[str, Any]:
        return {
            "classes": self.classes,
            "n_estimators": self.n_estimators,
            "max_features": self.max_features,
        }

    def train(self, examples: Sequence[tuple[Any, str]]) -> None:
        """Fit on (process, label) pairs

        Raises:
            ValueError: If examples is empty or holds a label outside CLASSES
        """
        if not examples:
            raise ValueError("No labeled examples to train on")

        unknown = {label for _, label in examples if label not in self.classes}
        if unknown:
            raise ValueError(f"Unknown labels: {sorted(unknown)}. Available: {self.classes}")

        X = np.asarray([extract_features(process) for process, _ in examples], dtype=float)
        y = np.asarray([self.classes.index(label) for _, label in examples])

        model = RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            bootstrap=True,
            random_state=self.seed,
        )
        model.fit(X, y)

        with self._lock.write():
            self.model = model
            self.trained = True

        logger.info(
            "Process classifier trained",
            examples=len(examples),
            labels=sorted({label for _, label in examples}),
        )

    def predict(self, process: Any) -> Classification:
        """Predicted label, confidence and per-class probabilities.

        Confidence and probabilities are only filled in when the fitted model
        can estimate probabilities.
        """
        with self._lock.read():
            if not self.trained or self.model is None:
                return Classification()
            try:
                features = [extract_features(process)]
                prediction = int(self.model.predict(features)[0])
                label = self.classes[prediction]

                confidence = 0.0
                probabilities: dict[str, float] = {}
                predict_proba = getattr(self.model, "predict_proba", None)
                if callable(predict_proba):
                    proba = predict_proba(features)[0]
                    known = [int(c) for c in getattr(self.model, "classes_", range(len(proba)))]
                    by_index = dict(zip(known, (float(p) for p in proba), strict=False))
                    probabilities = {
                        cls: by_index.get(idx, 0.0) for idx, cls in enumerate(self.classes)
                    }
                    confidence = by_index.get(prediction, 0.0)

                return Classification(
                    label=label, confidence=confidence, probabilities=probabilities
                )
            except Exception as e:
                logger.debug("Classification failed", error=str(e))
                return Classification()

    def predict_batch(self, processes: Sequence[Any]) -> list[Classification]:
        return [self.predict(process) for process in processes]

    def get_feature_importance(self) -> list[dict[str, float]] | None:
        """Forest feature importances, most important first"""
        with self._lock.read():
            importances = getattr(self.model, "feature_importances_", None)
            if not self.trained or importances is None:
                return None
            ranked = [
                {"feature": name, "importance": float(value)}
                for name, value in zip(CLASSIFIER_FEATURES, importances, strict=False)
            ]
        return sorted(ranked, key=lambda item: item["importance"], reverse=True)
