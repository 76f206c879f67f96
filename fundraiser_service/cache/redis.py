"""
Read-through cache for the admin aggregates (global stats and leaderboards).

Redis is optional. Every operation degrades to a miss or a no-op when the
client is absent or Redis errors, so the ledger database stays the only
source of truth.
"""
import json
from datetime import timedelta
from typing import Any, Callable, Optional

import redis
import structlog

from fundraiser_service.core.config import get_settings

logger = structlog.get_logger(__name__)

STATS_KEY = "fundraising:stats"
LEADERBOARD_KEY_PREFIX = "fundraising:leaderboard:"


def leaderboard_key(limit: int) -> str:
    return f"{LEADERBOARD_KEY_PREFIX}{limit}"


class AggregateCache:

    def __init__(self):
        self.client: Optional[redis.Redis] = None

    def connect(self, redis_url: Optional[str] = None) -> Optional[redis.Redis]:
        """Open the client and ping it; raises ConnectionError when Redis is down"""
        url = redis_url or get_settings().redis_url
        if not url:
            logger.info("Aggregate cache disabled, no REDIS_URL")
            return None

        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            logger.error("Redis ping failed", redis_url=url, error=str(e))
            raise ConnectionError(f"Redis at {url} is unreachable: {e}") from e

        self.client = client
        logger.info("Aggregate cache connected", redis_url=url)
        return client

    def close(self):
        if self.client is None:
            return
        self.client.close()
        self.client = None
        logger.info("Aggregate cache disconnected")

    def ping(self) -> str:
        if self.client is None:
            return "not_initialized"
        try:
            self.client.ping()
        except redis.RedisError as e:
            return f"error: {e}"
        return "connected"

    def _guarded(self, action: str, op: Callable[[redis.Redis], Any], fallback: Any, **log_kw) -> Any:
        if self.client is None:
            return fallback
        try:
            return op(self.client)
        except (redis.RedisError, ValueError, TypeError) as e:
            logger.warning("Aggregate cache unavailable", action=action, error=str(e), **log_kw)
            return fallback

    def _read(self, key: str) -> Optional[Any]:
        def _load(client: redis.Redis) -> Optional[Any]:
            raw = client.get(key)
            logger.debug("Aggregate cache hit" if raw else "Aggregate cache miss", key=key)
            return json.loads(raw) if raw else None

        return self._guarded("read", _load, None, key=key)

    def _write(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> bool:
        seconds = int((ttl or timedelta(seconds=get_settings().cache_ttl_seconds)).total_seconds())
        payload = json.dumps(value, default=str)
        return self._guarded("write", lambda c: bool(c.setex(key, seconds, payload)), False, key=key)

    def get_stats(self) -> Optional[dict]:
        return self._read(STATS_KEY)

    def set_stats(self, stats: dict) -> bool:
        return self._write(STATS_KEY, stats)

    def get_leaderboard(self, limit: int) -> Optional[list]:
        return self._read(leaderboard_key(limit))

    def set_leaderboard(self, limit: int, entries: list) -> bool:
        return self._write(leaderboard_key(limit), entries)

    def invalidate_aggregates(self) -> bool:
        """Drop the cached stats and every cached leaderboard size"""
        def _drop(client: redis.Redis) -> bool:
            keys = [STATS_KEY, *client.scan_iter(match=f"{LEADERBOARD_KEY_PREFIX}*")]
            logger.debug("Aggregate cache invalidated", deleted=client.delete(*keys))
            return True

        return self._guarded("invalidate", _drop, False)


redis_cache = AggregateCache()
