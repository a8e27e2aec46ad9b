"""
Redis-backed key-value store for short-lived records.

Values are JSON documents written with a store-enforced TTL (SETEX).
Unlike a cache, errors are not swallowed: callers such as the password
reset flow must know whether a write actually happened.
"""
import json
import logging
from typing import Any, Optional

import redis

from notelab.config import get_settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    """JSON values with TTL on top of a redis client"""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "KeyValueStore":
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        return cls(client)

    def get_json(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when the key is absent"""
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"KV get error for key {key}: {e}")
            raise
        if value is None:
            return None
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            logger.warning(f"KV value for key {key} is not valid JSON")
            return None

    def put_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds"""
        try:
            self.client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.error(f"KV put error for key {key}: {e}")
            raise

    def delete(self, key: str) -> bool:
        """Delete key; True if something was removed"""
        try:
            return self.client.delete(key) > 0
        except redis.RedisError as e:
            logger.error(f"KV delete error for key {key}: {e}")
            raise

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"KV store unavailable: {e}")
            return False


# Global store instance
_store_instance: Optional[KeyValueStore] = None


def get_kv_store() -> KeyValueStore:
    """Get or create the global store (also used as a FastAPI dependency)"""
    global _store_instance
    if _store_instance is None:
        _store_instance = KeyValueStore.from_url(get_settings().redis_url)
        logger.info("Key-value store configured")
    return _store_instance
