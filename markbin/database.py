"""
Database layer for Redis operations with in-memory fallback for development.
Handles paste storage, lookup, view counting, and health checks.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pydantic import ValidationError
from redis import Redis
from redis.exceptions import ConnectionError, RedisError

from markbin.config import settings
from markbin.errors import PasteExistsError, PasteNotFoundError, StoreError
from markbin.models import Paste, PasteMetadata

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Simple in-memory store for development/testing (when Redis unavailable)."""

    def __init__(self):
        self.store: Dict[str, Dict[str, Any]] = {}
        self.lock = threading.Lock()

    def hset(self, key: str, mapping: Dict[str, Any]):
        """Store hash data."""
        with self.lock:
            self.store.setdefault(key, {}).update(mapping)

    def hsetnx(self, key: str, field: str, value: Any) -> int:
        """Set a hash field only if it does not exist yet."""
        with self.lock:
            fields = self.store.setdefault(key, {})
            if field in fields:
                return 0
            fields[field] = value
            return 1

    def hgetall(self, key: str) -> Dict[str, Any]:
        """Retrieve hash data."""
        with self.lock:
            return dict(self.store.get(key, {}))

    def hget(self, key: str, field: str) -> Optional[Any]:
        """Retrieve a single hash field."""
        with self.lock:
            return self.store.get(key, {}).get(field)

    def hincrby(self, key: str, field: str, increment: int) -> int:
        """Increment hash field."""
        with self.lock:
            fields = self.store.setdefault(key, {})
            fields[field] = int(fields.get(field, 0)) + increment
            return fields[field]

    def delete(self, key: str):
        """Delete a key."""
        with self.lock:
            self.store.pop(key, None)

    def ping(self):
        """Health check."""
        return True


class PasteDatabase:
    """Wrapper for Redis operations on pastes."""

    def __init__(self, client=None):
        """Initialize Redis connection, fallback to in-memory store."""
        self.using_fallback = False
        if client is not None:
            self.redis = client
            self.using_fallback = isinstance(client, InMemoryStore)
            return
        try:
            logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
            self.redis = Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True
            )
            # Test connection
            self.redis.ping()
            logger.info("Redis connected successfully")
        except ConnectionError as e:
            logger.error(f"ConnectionError connecting to Redis: {type(e).__name__}: {str(e)}")
            logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
            self.redis = InMemoryStore()
            self.using_fallback = True
        except RedisError as e:
            logger.error(f"Unexpected error connecting to Redis: {type(e).__name__}: {str(e)}")
            logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
            self.redis = InMemoryStore()
            self.using_fallback = True

    @staticmethod
    def _key(url: str) -> str:
        return f"paste:{url}"

    def is_healthy(self) -> bool:
        """Check if database connection is alive."""
        try:
            self.redis.ping()
            return True
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
        return False

    def save_paste(self, paste: Paste) -> None:
        """
        Store a new paste with a zero view count.

        Args:
            paste: Paste to store

        Raises:
            PasteExistsError: If the url is already taken
            StoreError: If the backend fails
        """
        key = self._key(paste.url)
        try:
            # Claim the url atomically before writing the rest of the hash
            if not self.redis.hsetnx(key, "content", paste.content):
                raise PasteExistsError()
        except RedisError as e:
            logger.error(f"Error saving paste {paste.url}: {e}")
            raise StoreError() from e

        try:
            self.redis.hset(key, mapping={
                "metadata": paste.metadata.model_dump_json(),
                "created_at": datetime.now(timezone.utc).isoformat(),
                "views": 0,
            })
        except RedisError as e:
            logger.error(f"Error saving paste {paste.url}: {e}")
            self._discard(key)
            raise StoreError() from e
        logger.info(f"Paste {paste.url} saved successfully")

    def _discard(self, key: str) -> None:
        """Remove a half-written paste."""
        try:
            self.redis.delete(key)
        except RedisError as e:
            # Reads refuse a paste without metadata, so a leftover key stays unreadable
            logger.error(f"Error discarding incomplete paste {key}: {e}")

    def get_paste_by_url(self, url: str) -> Paste:
        """
        Fetch a paste from database.

        Args:
            url: Unique paste identifier

        Returns:
            The stored paste

        Raises:
            PasteNotFoundError: If no paste is stored under ``url``
            StoreError: If the backend fails or the record is malformed
        """
        try:
            paste_data = self.redis.hgetall(self._key(url))
        except RedisError as e:
            logger.error(f"Error fetching paste {url}: {e}")
            raise StoreError() from e

        if not paste_data or "content" not in paste_data:
            logger.warning(f"Paste {url} not found")
            raise PasteNotFoundError()

        if "metadata" not in paste_data:
            logger.error(f"Paste {url} has no metadata")
            raise StoreError("Stored paste is incomplete")

        try:
            metadata = PasteMetadata.model_validate_json(paste_data["metadata"])
        except ValidationError as e:
            logger.error(f"Paste {url} has malformed metadata: {e}")
            raise StoreError("Stored paste is malformed") from e

        return Paste(url=url, content=paste_data["content"], metadata=metadata)

    def incr_views_by_url(self, url: str) -> None:
        """
        Increment view count for a paste (atomic operation).

        Raises:
            StoreError: If the increment did not happen
        """
        try:
            # HINCRBY is atomic, prevents race conditions
            self.redis.hincrby(self._key(url), "views", 1)
        except RedisError as e:
            logger.error(f"Error incrementing views for {url}: {e}")
            raise StoreError() from e
        logger.info(f"View count incremented for paste {url}")

    def get_views_by_url(self, url: str) -> int:
        """Read the view count of a paste, 0 when unknown or unreadable."""
        try:
            views = self.redis.hget(self._key(url), "views")
        except RedisError as e:
            logger.error(f"Error reading views for {url}: {e}")
            return 0
        return int(views or 0)


# Global database instance
db = PasteDatabase()


def get_database() -> PasteDatabase:
    """FastAPI dependency returning the global database."""
    return db
