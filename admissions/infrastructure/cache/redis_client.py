# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis-backed draft cache.

Planning store mutations are synchronous, so this adapter uses the
blocking redis-py client. All keys are prefixed with planning: to keep
drafts apart from anything else stored in the same database.

Example:
    from admissions.infrastructure.cache import RedisDraftCache

    cache = RedisDraftCache.from_settings(settings)
    store = PlanningStore(cache, session_key="2026:operator-42")
"""

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

from admissions.core.exceptions import CacheError
from admissions.models import PlanningEntry

if TYPE_CHECKING:
    from admissions.core.config.settings import Settings

logger = logging.getLogger(__name__)

_entries_adapter = TypeAdapter(list[PlanningEntry])


class RedisDraftCache:
    """Draft cache stored as JSON strings in Redis.

    The client is the blocking redis-py one because the planning store is
    synchronous. Coroutines that load, refresh or clear a store run those
    calls through asyncio.to_thread so the event loop is not stalled.

    Attributes:
        client: Connected redis-py client (decode_responses=True).
        ttl_seconds: Expiry applied on every write; None disables it.
    """

    KEY_PREFIX = "planning"

    def __init__(self, client: Redis, ttl_seconds: Optional[int] = None) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RedisDraftCache":
        """Build a cache from application settings.

        Args:
            settings: Application settings containing Redis configuration.

        Returns:
            Cache bound to a new connection pool.
        """
        pool = ConnectionPool.from_url(settings.redis.url, decode_responses=True)
        return cls(Redis(connection_pool=pool), ttl_seconds=settings.redis.draft_ttl_seconds)

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    def get(self, key: str) -> list[PlanningEntry] | None:
        """Read a cached draft.

        A value that no longer parses as planning entries is treated as
        absent and removed.

        Raises:
            CacheError: If Redis fails.
        """
        try:
            raw = self.client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Failed to read draft {key}", e) from e

        if raw is None:
            return None
        try:
            return _entries_adapter.validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable draft cached under %s", key)
            self.clear(key)
            return None

    def set(self, key: str, entries: Sequence[PlanningEntry]) -> None:
        """Write a draft, applying the configured TTL.

        Raises:
            CacheError: If Redis fails.
        """
        payload = _entries_adapter.dump_json(list(entries)).decode("utf-8")
        try:
            if self.ttl_seconds:
                self.client.setex(self._key(key), self.ttl_seconds, payload)
            else:
                self.client.set(self._key(key), payload)
        except RedisError as e:
            raise CacheError(f"Failed to write draft {key}", e) from e

    def clear(self, key: str) -> None:
        """Delete a draft.

        Raises:
            CacheError: If Redis fails.
        """
        try:
            self.client.delete(self._key(key))
        except RedisError as e:
            raise CacheError(f"Failed to clear draft {key}", e) from e

    def close(self) -> None:
        """Close the underlying connection pool."""
        self.client.close()
