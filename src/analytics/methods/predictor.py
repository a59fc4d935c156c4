"""
Short-horizon forecasting of a scalar metric from a lookback window.

The series is min-max normalized, cut into lookback -> next-value pairs and
fitted with a two-layer feed-forward regressor. Forecasts are fail-safe:
whenever the model cannot answer, the last observed value is returned.
"""

import warnings
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import structlog
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPRegressor

from ..features import FeatureEngineer
from .base import AnalyticsModel

logger = structlog.get_logger(__name__)

SERIES_KEY = "series"


def _fallback(window: Any) -> float:
    """Last value of window, or 0 for an empty/invalid window"""
    try:
        return float(window[-1]) if len(window) else 0.0
    except Exception:
        return 0.0


class SequencePredictor(AnalyticsModel):
    """Next-value regressor over a fixed lookback window"""

    def __init__(
        self,
        lookback: int = 10,
        hidden_units: int = 50,
        learning_rate: float = 0.001,
        seed: int | None = None,
    ):
        super().__init__()
        if lookback < 1 or hidden_units < 2:
            raise ValueError("lookback must be >= 1 and hidden_units >= 2")

        self.lookback = lookback
        self.hidden_units = hidden_units
        self.learning_rate = learning_rate
        self.seed = seed
        self.model: MLPRegressor | None = None
        self.norm_params: dict[str, float] | None = None

    @property
    def name(self) -> str:
        return "sequence_predictor"

    def get_config(self) -> dict[str, Any]:
        return {
            "input_shape": self.lookback,
            "hidden_units": self.hidden_units,
            "learning_rate": self.learning_rate,
        }

    def prepare_sequences(self, series: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        """Lookback windows and the value following each one"""
        windows = FeatureEngineer().create_windows(series, self.lookback + 1)
        pairs = np.asarray(list(windows), dtype=float)
        return pairs[:, :-1], pairs[:, -1]

    def train(self, series: Sequence[float], epochs: int = 50, batch_size: int = 32) -> float:
        """Fit the regressor end to end on series

        Returns:
            Final training loss

        Raises:
            ValueError: If series has no more than lookback points
        """
        if len(series) <= self.lookback:
            raise ValueError(
                f"Need more than {self.lookback} points to train, got {len(series)}"
            )

        engineer = FeatureEngineer()
        normalized = engineer.normalize(series, SERIES_KEY)
        scaler = engineer.scalers[SERIES_KEY]
        X, y = self.prepare_sequences(normalized)

        model = MLPRegressor(
            hidden_layer_sizes=(self.hidden_units, self.hidden_units // 2),
            solver="adam",
            learning_rate_init=self.learning_rate,
            max_iter=epochs,
            batch_size=min(batch_size, len(X)),
            random_state=self.seed,
        )

        logger.info("Training sequence predictor", points=len(series), pairs=len(X), epochs=epochs)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            model.fit(X, y)

        with self._lock.write():
            self.model = model
            self.norm_params = {"min": scaler.min, "max": scaler.max}
            self.trained = True

        logger.info("Sequence predictor trained", loss=round(float(model.loss_), 6))
        return float(model.loss_)

    def predict(self, window: Sequence[float]) -> float:
        """Forecast the value following window"""
        last = _fallback(window)
        with self._lock.read():
            if not self.trained or self.model is None or not self.norm_params:
                return last
            try:
                values = np.asarray(window, dtype=float)[-self.lookback :]
                if len(values) < self.lookback:
                    return last

                lo, hi = self.norm_params["min"], self.norm_params["max"]
                span = (hi - lo) or 1.0
                normalized = (values - lo) / span
                value = float(self.model.predict(normalized.reshape(1, -1))[0])
                forecast = value * (hi - lo) + lo
            except Exception as e:
                logger.debug("Sequence prediction failed", error=str(e))
                return last

        return forecast if np.isfinite(forecast) else last

    def predict_multi_step(self, window: Sequence[float], steps: int = 5) -> list[float]:
        """Forecast steps values, feeding each forecast back as history"""
        if not self.trained or self.model is None or not self.norm_params:
            return [_fallback(window)] * steps

        buffer = [float(v) for v in window]
        predictions = []
        for _ in range(steps):
            next_value = self.predict(buffer[-self.lookback :])
            predictions.append(next_value)
            buffer.append(next_value)
        return predictions

    def save(self, path: str | Path) -> None:
        """Persist the fitted model and its scaling parameters with joblib"""
        with self._lock.read():
            if self.model is None:
                logger.warning("No fitted predictor to save", path=str(path))
                return
            bundle = {
                "model": self.model,
                "norm_params": self.norm_params,
                "lookback": self.lookback,
                "hidden_units": self.hidden_units,
            }
        joblib.dump(bundle, path)
        logger.info("Sequence predictor saved", path=str(path))

    def load(self, path: str | Path) -> None:
        """Restore a predictor written by save()"""
        bundle = joblib.load(path)
        with self._lock.write():
            self.model = bundle["model"]
            self.norm_params = bundle["norm_params"]
            self.lookback = bundle["lookback"]
            self.hidden_units = bundle["hidden_units"]
            self.trained = True
        logger.info("Sequence predictor loaded", path=str(path))
