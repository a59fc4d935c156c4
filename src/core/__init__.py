"""
Core utilities shared across the monitor, trainer and generator.
"""

from .database import PostgresConnection
from .logger import setup_logging

__all__ = ["PostgresConnection", "setup_logging"]
