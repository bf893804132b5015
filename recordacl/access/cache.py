"""Cache for loaded permission sources.

Entries are keyed by ``(user_id, module_name, group_id)`` and must be
invalidated whenever a user's role or group assignment changes. Expired
entries are purged on every write and the oldest entries are evicted
once ``max_entries`` is reached.
"""

import time
from typing import Callable, Dict, Optional, Tuple

from ..common.logger import get_logger
from .selector import PermissionSources

logger = get_logger("cache")

CacheKey = Tuple[str, str, Optional[str]]


class PermissionCache:
    """In-process TTL cache of PermissionSources."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: Entry lifetime; 0 disables expiry
            max_entries: Upper bound on stored entries
            clock: Monotonic time source
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, PermissionSources]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, user_id: str, module_name: str, group_id: Optional[str]) -> Optional[PermissionSources]:
        """Return cached sources, evicting the entry if it has expired."""
        key = (user_id, module_name, group_id)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, sources = entry
        if self._is_expired(stored_at, self._clock()):
            del self._entries[key]
            return None
        return sources

    def _is_expired(self, stored_at: float, now: float) -> bool:
        return bool(self.ttl_seconds) and now - stored_at > self.ttl_seconds

    def purge_expired(self) -> int:
        """Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if self._is_expired(stored_at, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def set(
        self,
        user_id: str,
        module_name: str,
        group_id: Optional[str],
        sources: PermissionSources,
    ) -> None:
        """Store sources, purging expired entries and evicting the oldest when full."""
        key = (user_id, module_name, group_id)
        # Re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        self.purge_expired()

        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Permission cache full, evicted oldest entry")

        self._entries[key] = (self._clock(), sources)

    def invalidate(
        self,
        user_id: Optional[str] = None,
        module_name: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> int:
        """Drop every entry matching all of the given key parts.

        Returns:
            Number of entries removed
        """
        doomed = [
            key
            for key in self._entries
            if (user_id is None or key[0] == user_id)
            and (module_name is None or key[1] == module_name)
            and (group_id is None or key[2] == group_id)
        ]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} cached permission sources")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
