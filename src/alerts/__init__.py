"""
Alerting: threshold and ML-derived rules with per-key cooldowns and an
open -> acknowledged -> resolved lifecycle.
"""

from .cooldown import CooldownMap, RedisCooldownMap
from .database import AlertDatabase
from .engine import AlertEngine
from .models import Alert, AlertConfig, AlertSource, AlertType, Threshold, calculate_severity

__all__ = [
    "Alert",
    "AlertConfig",
    "AlertDatabase",
    "AlertEngine",
    "AlertSource",
    "AlertType",
    "CooldownMap",
    "RedisCooldownMap",
    "Threshold",
    "calculate_severity",
]
