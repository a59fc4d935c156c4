"""
Tests for the in-process and Redis cooldown maps.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import redis

from src.alerts.cooldown import CooldownMap, RedisCooldownMap

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestCooldownMap:
    """Tests for CooldownMap."""

    def test_first_acquire_records(self):
        cooldowns = CooldownMap(period_seconds=60)

        assert cooldowns.try_acquire("process:1:cpu", NOW) is True
        assert cooldowns.get("process:1:cpu") == NOW
        assert len(cooldowns) == 1

    def test_acquire_within_period_is_refused(self):
        cooldowns = CooldownMap(period_seconds=60)
        cooldowns.try_acquire("k", NOW)

        assert cooldowns.try_acquire("k", NOW + timedelta(seconds=59)) is False
        assert cooldowns.get("k") == NOW

    def test_acquire_after_period(self):
        cooldowns = CooldownMap(period_seconds=60)
        cooldowns.try_acquire("k", NOW)
        later = NOW + timedelta(seconds=60)

        assert cooldowns.try_acquire("k", later) is True
        assert cooldowns.get("k") == later

    def test_set_delete_clear(self):
        cooldowns = CooldownMap()
        cooldowns.set("a", NOW)
        cooldowns.set("b", NOW)

        cooldowns.delete("a")
        cooldowns.delete("missing")
        assert cooldowns.get("a") is None
        assert len(cooldowns) == 1

        cooldowns.clear()
        assert len(cooldowns) == 0

    def test_zero_period_never_suppresses(self):
        cooldowns = CooldownMap(period_seconds=0)

        assert cooldowns.try_acquire("k", NOW) is True
        assert cooldowns.try_acquire("k", NOW) is True


class TestRedisCooldownMap:
    """Tests for RedisCooldownMap with a mocked client."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def cooldowns(self, client):
        return RedisCooldownMap(period_seconds=60, client=client)

    def test_pings_on_init(self, client, cooldowns):
        client.ping.assert_called_once()

    def test_init_failure_raises(self, client):
        client.ping.side_effect = redis.ConnectionError("refused")

        with pytest.raises(redis.ConnectionError):
            RedisCooldownMap(client=client)

    @patch("src.alerts.cooldown.redis.Redis")
    def test_builds_client(self, mock_redis):
        RedisCooldownMap(host="cache", port=6380, db=2)

        mock_redis.assert_called_once_with(
            host="cache", port=6380, db=2, password=None, decode_responses=True
        )

    def test_try_acquire_uses_set_nx_px(self, client, cooldowns):
        client.set.return_value = True

        assert cooldowns.try_acquire("process:1:cpu", NOW) is True
        client.set.assert_called_once_with(
            "alert:cooldown:process:1:cpu", NOW.isoformat(), nx=True, px=60000
        )

    def test_try_acquire_refused_when_key_exists(self, client, cooldowns):
        client.set.return_value = None

        assert cooldowns.try_acquire("k", NOW) is False

    def test_try_acquire_allows_when_redis_fails(self, client, cooldowns):
        client.set.side_effect = redis.ConnectionError("gone")

        assert cooldowns.try_acquire("k", NOW) is True

    def test_get(self, client, cooldowns):
        client.get.return_value = NOW.isoformat()

        assert cooldowns.get("k") == NOW
        client.get.assert_called_once_with("alert:cooldown:k")

    def test_get_missing(self, client, cooldowns):
        client.get.return_value = None

        assert cooldowns.get("k") is None

    def test_set_and_delete(self, client, cooldowns):
        cooldowns.set("k", NOW)
        cooldowns.delete("k")

        client.set.assert_called_once_with("alert:cooldown:k", NOW.isoformat(), px=60000)
        client.delete.assert_called_once_with("alert:cooldown:k")

    def test_clear_scans_prefix(self, client, cooldowns):
        client.scan_iter.return_value = iter(["alert:cooldown:a", "alert:cooldown:b"])

        cooldowns.clear()

        client.scan_iter.assert_called_once_with(match="alert:cooldown:*")
        client.delete.assert_called_once_with("alert:cooldown:a", "alert:cooldown:b")

    def test_clear_empty(self, client, cooldowns):
        client.scan_iter.return_value = iter([])

        cooldowns.clear()

        client.delete.assert_not_called()
