"""
Analytics models: anomaly detection, forecasting and workload classification.
"""

from .base import AnalyticsModel, ReadWriteLock
from .classifier import CLASSES, ProcessClassifier, extract_features
from .isolation_forest import IsolationForest, average_path_length
from .predictor import SequencePredictor

__all__ = [
    "AnalyticsModel",
    "ReadWriteLock",
    "IsolationForest",
    "SequencePredictor",
    "ProcessClassifier",
    "CLASSES",
    "average_path_length",
    "extract_features",
]
