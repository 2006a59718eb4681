"""
Valkey (Redis-compatible) client backing the session store.

Thin wrapper around redis-py that stores JSON documents with an optional
TTL. Connection failures raise; there is no in-process fallback store.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    JSON key/value access to Valkey.

    Usage:
        valkey = ValkeyClient(get_valkey_url())
        valkey.set_json("session:abc", {"account_id": "..."}, expire_seconds=3600)
        record = valkey.get_json("session:abc")  # None once expired
    """

    def __init__(self, url: str):
        """
        Connect and ping once so a bad URL fails at startup.

        Raises:
            redis.ConnectionError: Valkey unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("Connected to Valkey")

    def ping(self) -> bool:
        """Health check. Raises redis.ConnectionError if unreachable."""
        return bool(self._client.ping())

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        """Store value as JSON. Without expire_seconds the key never expires."""
        self._client.set(key, json.dumps(value), ex=expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        """
        Load a JSON value.

        Returns None for a missing or expired key. Raises ValueError when the
        stored payload is not JSON.
        """
        raw = self._client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Key '{key}' does not hold JSON: {e}") from e

    def delete(self, key: str) -> bool:
        """Remove key. True if it existed."""
        return self._client.delete(key) == 1

    def close(self) -> None:
        self._client.close()
        logger.info("Valkey connection closed")
