"""
Feature engineering and scaling for process samples.

A FeatureEngineer turns a sample plus its recent history into a fixed-order
feature vector and remembers per-feature scaling parameters so values can be
mapped back after normalization.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from .models import ProcessSample

FEATURE_NAMES = [
    "cpu",
    "memory",
    "threads",
    "io_read",
    "io_write",
    "cpu_per_thread",
    "memory_per_thread",
    "cpu_mean",
    "cpu_std",
    "cpu_trend",
    "memory_mean",
    "memory_std",
    "memory_trend",
]

FILL_STRATEGIES = ("mean", "median", "zero")


class UnknownScalerError(LookupError):
    """Raised when inverting a scaling that was never fitted"""


@dataclass(frozen=True)
class Scaler:
    """Min-max parameters recorded by normalize()"""

    min: float
    max: float
    range: float


@dataclass(frozen=True)
class Standardizer:
    """Mean/std parameters recorded by standardize()"""

    mean: float
    std: float


class SlidingWindows:
    """Contiguous windows over a series, produced lazily on each iteration"""

    def __init__(self, series: Sequence[float], window_size: int, stride: int):
        self.series = list(series)
        self.window_size = window_size
        self.stride = stride

    def __iter__(self) -> Iterator[list[float]]:
        for start in range(0, len(self.series) - self.window_size + 1, self.stride):
            yield self.series[start : start + self.window_size]

    def __len__(self) -> int:
        if len(self.series) < self.window_size:
            return 0
        return (len(self.series) - self.window_size) // self.stride + 1


def _as_array(values: Any) -> np.ndarray:
    if np.isscalar(values):
        values = [values]
    return np.asarray(values, dtype=float)


def _history_series(history: Sequence[Any], name: str) -> np.ndarray:
    values = []
    for entry in history:
        value = entry.get(name) if isinstance(entry, Mapping) else getattr(entry, name, None)
        values.append(float(value or 0.0))
    return np.asarray(values, dtype=float)


def trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index (0 for fewer than 2 points)"""
    if len(values) < 2:
        return 0.0
    x = np.arange(len(values))
    return float(np.polyfit(x, np.asarray(values, dtype=float), 1)[0])


class FeatureEngineer:
    """Stateless feature derivation plus remembered scaling parameters"""

    def __init__(self):
        self.scalers: dict[str, Scaler] = {}
        self.standardizers: dict[str, Standardizer] = {}

    def normalize(self, values: Any, key: str) -> list[float]:
        """Min-max scale values to [0, 1] and remember the scaler under key"""
        data = _as_array(values)
        if data.size == 0:
            raise ValueError(f"Cannot normalize an empty series for '{key}'")

        lo, hi = float(data.min()), float(data.max())
        scaler = Scaler(min=lo, max=hi, range=(hi - lo) or 1.0)
        self.scalers[key] = scaler

        return ((data - scaler.min) / scaler.range).tolist()

    def denormalize(self, values: Any, key: str) -> list[float]:
        """Invert normalize() for key

        Raises:
            UnknownScalerError: If key was never normalized
        """
        scaler = self.scalers.get(key)
        if scaler is None:
            raise UnknownScalerError(f"No scaler found for feature: {key}")

        return (_as_array(values) * scaler.range + scaler.min).tolist()

    def standardize(self, values: Any, key: str) -> list[float]:
        """Z-score values with the population std (floored to 1 when zero)"""
        data = _as_array(values)
        if data.size == 0:
            raise ValueError(f"Cannot standardize an empty series for '{key}'")

        mean = float(data.mean())
        std = float(data.std()) or 1.0
        self.standardizers[key] = Standardizer(mean=mean, std=std)

        return ((data - mean) / std).tolist()

    def engineer_features(
        self, sample: ProcessSample | Mapping[str, Any], history: Sequence[Any] = ()
    ) -> dict[str, float]:
        """Derive the feature mapping for a sample given its prior history.

        History entries may be snapshot dicts or ProcessSample objects. Rolling
        statistics are 0 when the history is empty.
        """
        names = ("cpu", "memory", "threads", "io_read", "io_write")
        if isinstance(sample, Mapping):
            current = {name: sample.get(name) for name in names}
        else:
            current = {name: getattr(sample, name, None) for name in names}

        cpu = float(current["cpu"] or 0.0)
        memory = float(current["memory"] or 0.0)
        threads = float(current["threads"] or 1)

        features = {
            "cpu": cpu,
            "memory": memory,
            "threads": threads,
            "io_read": float(current["io_read"] or 0.0),
            "io_write": float(current["io_write"] or 0.0),
            "cpu_per_thread": cpu / threads,
            "memory_per_thread": memory / threads,
            "cpu_mean": 0.0,
            "cpu_std": 0.0,
            "cpu_trend": 0.0,
            "memory_mean": 0.0,
            "memory_std": 0.0,
            "memory_trend": 0.0,
        }

        if len(history) > 0:
            for name in ("cpu", "memory"):
                series = _history_series(history, name)
                features[f"{name}_mean"] = float(series.mean())
                features[f"{name}_std"] = float(series.std())
                features[f"{name}_trend"] = trend_slope(series)

        return features

    def feature_vector(
        self, sample: ProcessSample | Mapping[str, Any], history: Sequence[Any] = ()
    ) -> list[float]:
        """Engineered features as a list ordered by FEATURE_NAMES"""
        features = self.engineer_features(sample, history)
        return [features[name] for name in FEATURE_NAMES]

    def fill_missing(self, series: Sequence[Any], strategy: str = "mean") -> list[Any]:
        """Replace None/NaN entries; returns the input unchanged if nothing is valid"""
        if strategy not in FILL_STRATEGIES:
            raise ValueError(f"Unknown fill strategy '{strategy}'. Available: {FILL_STRATEGIES}")

        values = pd.Series(list(series), dtype="float64")
        valid = values.dropna()
        if valid.empty:
            return list(series)

        if strategy == "mean":
            fill_value = float(valid.mean())
        elif strategy == "median":
            ordered = valid.sort_values().tolist()
            fill_value = ordered[len(ordered) // 2]
        else:
            fill_value = 0.0

        return values.fillna(fill_value).tolist()

    def create_windows(
        self, series: Sequence[float], window_size: int = 10, stride: int = 1
    ) -> SlidingWindows:
        """Sliding windows of window_size values advancing by stride"""
        if window_size < 1 or stride < 1:
            raise ValueError("window_size and stride must be positive")
        return SlidingWindows(series, window_size, stride)
