"""
Key-value storage backends for cart documents and admin sessions.
"""
import time
import logging
from typing import Dict, Optional, Protocol, Tuple

from storefront.config import Config
from storefront.redis_client import RedisClient

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("redis", "memory")


class CartStorage(Protocol):
    """Durable string key-value storage"""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def ping(self) -> bool: ...


class MemoryStorage:
    """Process-local storage, used in tests and local development"""

    def __init__(self):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ex if ex else None
        self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def ping(self) -> bool:
        return True


# Global storage instance
_storage: Optional[CartStorage] = None


def get_storage() -> CartStorage:
    """Get or create the configured storage backend (singleton)"""
    global _storage
    if _storage is None:
        backend = Config.STORAGE_BACKEND.lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown STORAGE_BACKEND: {Config.STORAGE_BACKEND}")
        _storage = MemoryStorage() if backend == "memory" else RedisClient()
        logger.info(f"Using {backend} storage backend")
    return _storage


def close_storage() -> None:
    """Release the storage backend's connections, if any were opened"""
    global _storage
    if isinstance(_storage, RedisClient):
        _storage.close()
    _storage = None
