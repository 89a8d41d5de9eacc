import redis

from lexigraph.config.settings import Settings
from lexigraph.logging.logger import Log
from lexigraph.storage.base import BaseCache


class RedisCache(BaseCache):
    """Best-effort string cache: failures are logged and reported as misses."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCache":
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_timeout_seconds,
            socket_connect_timeout=settings.redis_timeout_seconds,
        )
        return cls(client)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            Log.warning(f"Cache set failed for {key}: {exc}")

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            Log.warning(f"Cache get failed for {key}: {exc}")
            return None
        return value if value else None

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            Log.warning(f"Cache delete failed for {key}: {exc}")

    def close(self) -> None:
        self._client.close()
