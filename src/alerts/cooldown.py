"""
Cooldown maps used to deduplicate alerts.

A key may fire once per cooldown period. `try_acquire` checks and records a
firing in one atomic step.
"""

import threading
from datetime import datetime, timedelta

import redis
import structlog

logger = structlog.get_logger(__name__)


class CooldownMap:
    """In-process key -> last fired time map guarded by a mutex"""

    def __init__(self, period_seconds: float = 60.0):
        self.period = timedelta(seconds=period_seconds)
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> datetime | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, fired_at: datetime) -> None:
        with self._lock:
            self._entries[key] = fired_at

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def try_acquire(self, key: str, now: datetime) -> bool:
        """Record a firing at `now` unless the key fired within the period"""
        with self._lock:
            last = self._entries.get(key)
            if last is not None and now - last < self.period:
                return False
            self._entries[key] = now
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCooldownMap:
    """Cooldown map shared between monitor processes through Redis.

    Each entry is a key written with NX and a PX expiry of one period, so
    Redis both serializes concurrent acquirers and forgets stale entries.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        period_seconds: float = 60.0,
        prefix: str = "alert:cooldown",
        client=None,
    ):
        self.period = timedelta(seconds=period_seconds)
        self.prefix = prefix
        try:
            self.redis = client or redis.Redis(
                host=host,
                port=port,
                db=db,
                password=password,
                decode_responses=True,
            )
            self.redis.ping()
            logger.info("Redis cooldown map initialized", host=host, port=port)
        except Exception as e:
            logger.error("Failed to initialize Redis", error=str(e))
            raise

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    @property
    def _period_ms(self) -> int:
        return max(1, int(self.period.total_seconds() * 1000))

    def get(self, key: str) -> datetime | None:
        value = self.redis.get(self._make_key(key))
        return datetime.fromisoformat(value) if value else None

    def set(self, key: str, fired_at: datetime) -> None:
        self.redis.set(self._make_key(key), fired_at.isoformat(), px=self._period_ms)

    def delete(self, key: str) -> None:
        self.redis.delete(self._make_key(key))

    def try_acquire(self, key: str, now: datetime) -> bool:
        """SET NX PX; an unreachable Redis lets the alert through"""
        try:
            acquired = self.redis.set(
                self._make_key(key), now.isoformat(), nx=True, px=self._period_ms
            )
            return bool(acquired)
        except redis.RedisError as e:
            logger.error("Cooldown check failed, allowing alert", key=key, error=str(e))
            return True

    def clear(self) -> None:
        keys = list(self.redis.scan_iter(match=f"{self.prefix}:*"))
        if keys:
            self.redis.delete(*keys)
