"""
Base abstract interface for the analytics models.

All models inherit from AnalyticsModel and share:
- a trained flag, flipped only by a successful training run
- a reader-writer lock: inference holds the shared side, training the exclusive side
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    A waiting writer blocks new readers, so a steady stream of inference
    cannot starve a training swap.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class AnalyticsModel(ABC):
    """Abstract base class for all analytics models

    Training builds the new state off to the side and installs it under the
    write lock, so a failed run leaves the previous state untouched.
    """

    def __init__(self):
        self.trained = False
        self._lock = ReadWriteLock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the model"""
        pass

    @abstractmethod
    def get_config(self) -> dict[str, Any]:
        """Get the hyperparameters of this model"""
        pass

    def status(self) -> dict[str, Any]:
        """Trained flag plus hyperparameters"""
        return {"trained": self.trained, **self.get_config()}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(trained={self.trained}, config={self.get_config()})"
