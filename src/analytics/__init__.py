"""
Process Analytics

Machine-learning analysis of per-process resource telemetry.

Architecture:
- Feature engineering: per-process rolling statistics and normalization
- Models: isolation forest anomaly scoring, MLP sequence forecasting, random forest
  workload classification
- Batch training: retrains models from stored metric snapshots

Usage:
    # Train models on stored snapshots
    python -m src.analytics.train
"""

from .collector import MetricsCollector
from .database import MetricsDatabase
from .features import FeatureEngineer, UnknownScalerError
from .history import HistoryStore
from .models import (
    AnalysisResult,
    AnalyticsConfig,
    AnomalyResult,
    Classification,
    ProcessSample,
    TrainerConfig,
)
from .service import AnalyticsEngine
from .trainer import ModelTrainer

__all__ = [
    "AnalyticsEngine",
    "AnalyticsConfig",
    "AnalysisResult",
    "AnomalyResult",
    "Classification",
    "FeatureEngineer",
    "HistoryStore",
    "MetricsCollector",
    "MetricsDatabase",
    "ModelTrainer",
    "ProcessSample",
    "TrainerConfig",
    "UnknownScalerError",
]
