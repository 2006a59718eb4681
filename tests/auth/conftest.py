"""Auth fixtures: an in-memory stand-in for the Valkey session store."""

from unittest.mock import Mock

import pytest

from clients.valkey_client import ValkeyClient


@pytest.fixture
def store():
    """Backing dict for the fake Valkey: key -> (value, ttl)."""
    return {}


@pytest.fixture
def valkey(store):
    """Mock ValkeyClient whose JSON calls read and write `store`."""
    mock = Mock(spec=ValkeyClient)

    def set_json(key, value, expire_seconds=None):
        store[key] = (value, expire_seconds)

    def get_json(key):
        entry = store.get(key)
        return entry[0] if entry else None

    def delete(key):
        return store.pop(key, None) is not None

    mock.set_json.side_effect = set_json
    mock.get_json.side_effect = get_json
    mock.delete.side_effect = delete
    return mock
