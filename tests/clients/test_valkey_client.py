"""Tests for ValkeyClient with redis-py mocked."""

from unittest.mock import MagicMock

import pytest
import redis

from clients.valkey_client import ValkeyClient


@pytest.fixture
def redis_mock(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr("clients.valkey_client.redis.from_url", lambda url, **kwargs: mock)
    return mock


@pytest.fixture
def valkey(redis_mock):
    return ValkeyClient("redis://localhost:6379/0")


class TestConnect:

    def test_pings_on_init(self, valkey, redis_mock):
        redis_mock.ping.assert_called_once()

    def test_unreachable_raises(self, redis_mock):
        redis_mock.ping.side_effect = redis.ConnectionError("refused")

        with pytest.raises(redis.ConnectionError):
            ValkeyClient("redis://nowhere:6379/0")


class TestJson:

    def test_set_with_ttl(self, valkey, redis_mock):
        valkey.set_json("session:a", {"account_id": "x"}, expire_seconds=60)

        redis_mock.set.assert_called_once_with("session:a", '{"account_id": "x"}', ex=60)

    def test_set_without_ttl(self, valkey, redis_mock):
        valkey.set_json("k", [1, 2])

        redis_mock.set.assert_called_once_with("k", "[1, 2]", ex=None)

    def test_get_missing(self, valkey, redis_mock):
        redis_mock.get.return_value = None

        assert valkey.get_json("k") is None

    def test_get_decodes(self, valkey, redis_mock):
        redis_mock.get.return_value = '{"a": 1}'

        assert valkey.get_json("k") == {"a": 1}

    def test_get_invalid_json_raises(self, valkey, redis_mock):
        redis_mock.get.return_value = "not json"

        with pytest.raises(ValueError, match="does not hold JSON"):
            valkey.get_json("k")


class TestDelete:

    def test_reports_existence(self, valkey, redis_mock):
        redis_mock.delete.return_value = 1
        assert valkey.delete("k") is True

        redis_mock.delete.return_value = 0
        assert valkey.delete("k") is False
