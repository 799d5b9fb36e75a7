"""
Key Source backed by a Redis set.
Upstream producers SADD identifiers to the set; the reconciler reads the
members once per run and SREMs them when the batch is done.
"""

import logging
from typing import Iterable, List, Optional

import redis

from expiry_reconciler.core.config import RedisSettings
from expiry_reconciler.core.exceptions import KeySourceError

logger = logging.getLogger(__name__)


class RedisKeySource:
    """Reads and removes members of a named Redis set."""

    def __init__(self, settings: Optional[RedisSettings] = None, client: Optional[redis.Redis] = None):
        """
        Initialize the Redis client.

        Args:
            settings: Connection settings (ignored when a client is given)
            client: An existing Redis client to use
        """
        if client is not None:
            self.redis = client
            return

        settings = settings or RedisSettings()
        self.redis = redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            username=settings.username,
            password=settings.password,
            socket_timeout=5,
            socket_connect_timeout=5,
            decode_responses=True,
        )
        logger.info(f"Redis key source initialized - {settings.host}:{settings.port}/{settings.db}")

    def members(self, set_name: str) -> List[str]:
        """
        Return the current members of a set.

        Members are sorted so a run iterates them in a stable order.

        Raises:
            KeySourceError: On connection or protocol failure
        """
        try:
            result = self.redis.smembers(set_name)
        except redis.RedisError as e:
            logger.error(f"Error reading members of {set_name}: {e}")
            raise KeySourceError(f"error reading members of set {set_name}: {e}") from e

        return sorted(
            m.decode('utf-8') if isinstance(m, bytes) else m
            for m in result
        )

    def remove_members(self, set_name: str, keys: Iterable[str]) -> int:
        """
        Remove exactly the given keys from a set in a single SREM.

        Returns:
            The number of members actually removed

        Raises:
            KeySourceError: On connection or protocol failure
        """
        keys = list(keys)
        if not keys:
            return 0
        try:
            removed = self.redis.srem(set_name, *keys)
        except redis.RedisError as e:
            logger.error(f"Error removing {len(keys)} members from {set_name}: {e}")
            raise KeySourceError(f"error removing members from set {set_name}: {e}") from e

        logger.debug(f"Removed {removed} of {len(keys)} members from {set_name}")
        return removed

    def close(self) -> None:
        self.redis.close()
