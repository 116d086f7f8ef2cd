"""
Redis-backed storage for cart documents and admin sessions.

Transient connection and timeout errors are retried by redis-py itself with
exponential backoff; anything that still fails surfaces as
StorageConnectionError.
"""
import logging
from typing import Any, Callable, Optional

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from redis.retry import Retry

from storefront.config import Config
from storefront.exceptions import StorageConnectionError

logger = logging.getLogger(__name__)

RETRY_ATTEMPTS = 3


def build_retry() -> Retry:
    """Backoff policy for transient failures: 0.2s, 0.4s, 0.8s, capped at 2s"""
    return Retry(ExponentialBackoff(cap=2.0, base=0.1), RETRY_ATTEMPTS)


class RedisClient:
    """Cart storage on Redis, one string value per key"""

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.url = url or Config.redis_url()
        self.client = client or self._build_client()

    def _build_client(self) -> redis.Redis:
        options = dict(
            max_connections=Config.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=Config.REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
            retry=build_retry(),
            retry_on_error=[ConnectionError, TimeoutError],
            decode_responses=True,
        )
        if self.url.startswith("rediss://"):
            # ElastiCache uses self-signed certs
            options["ssl_cert_reqs"] = None
        return redis.Redis.from_url(self.url, **options)

    def _run(self, command: str, func: Callable, *args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except RedisError as e:
            logger.error(f"Redis {command} failed: {e}")
            raise StorageConnectionError(f"Redis {command} failed: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._run("GET", self.client.get, key)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        self._run("SET", self.client.set, key, value, ex=ex)

    def delete(self, key: str) -> None:
        self._run("DEL", self.client.delete, key)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def close(self) -> None:
        self.client.close()
