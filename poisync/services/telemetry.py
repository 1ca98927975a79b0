# poisync/services/telemetry.py
"""Telemetry sinks. The sync controller publishes one value per POI per cycle."""
import json
import threading
from typing import Any, Dict, Optional, Protocol

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


class TelemetrySink(Protocol):
    async def publish(self, path: str, value: Any) -> None: ...


def delta_message(path: str, value: Any) -> Dict[str, Any]:
    """Signal K style delta carrying a single path/value pair."""
    return {"updates": [{"values": [{"path": path, "value": value}]}]}


class InMemoryTelemetrySink:
    """Keeps the latest value per path."""

    def __init__(self):
        self.latest: Dict[str, Any] = {}
        self.published = 0
        self._lock = threading.Lock()

    async def publish(self, path: str, value: Any) -> None:
        with self._lock:
            self.latest[path] = value
            self.published += 1

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self.latest)


class RedisTelemetrySink:
    """
    Publishes each delta on a Redis pub/sub channel and mirrors it into a
    wrapped sink (usually the in-memory one) so it stays queryable locally.
    Redis errors are logged, never raised.
    """

    def __init__(self, redis: Redis, channel: str, mirror: Optional[InMemoryTelemetrySink] = None):
        self._redis = redis
        self.channel = channel
        self.mirror = mirror

    @classmethod
    def from_url(cls, url: str, channel: str, mirror: Optional[InMemoryTelemetrySink] = None):
        if not url:
            raise ValueError("REDIS_URL is not set in the environment")
        return cls(Redis.from_url(url), channel, mirror)

    async def publish(self, path: str, value: Any) -> None:
        if self.mirror is not None:
            await self.mirror.publish(path, value)
        try:
            await self._redis.publish(self.channel, json.dumps(delta_message(path, value)))
        except Exception as e:
            logger.error("telemetry_redis_publish_error", error=str(e), path=path)

    def snapshot(self) -> Dict[str, Any]:
        return self.mirror.snapshot() if self.mirror is not None else {}

    async def aclose(self):
        await self._redis.aclose()
