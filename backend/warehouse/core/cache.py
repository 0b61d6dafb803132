# backend/warehouse/core/cache.py
"""Process-local lookup cache for list/detail responses.

Keys are namespaced strings such as ``materials:list:...`` so a whole
namespace can be dropped with one ``invalidate("materials")`` call after a
write. One instance is created at startup and reached through the
``get_cache`` dependency.
"""

import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Namespaces
MATERIALS = "materials"
PRODUCTS = "products"
DASHBOARD = "dashboard"


class LookupCache:
    """In-memory key/value store whose entries expire after a TTL."""

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)

    def invalidate(self, prefix_or_key: str) -> int:
        """Drop the key itself and every key starting with it.

        Returns:
            Number of entries removed
        """
        stale = [k for k in self._entries if k.startswith(prefix_or_key)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for '{prefix_or_key}'")
        return len(stale)

    def invalidate_materials(self) -> None:
        # product detail embeds material balances, dashboard aggregates both
        self.invalidate(MATERIALS)
        self.invalidate(PRODUCTS)
        self.invalidate(DASHBOARD)

    def invalidate_products(self) -> None:
        self.invalidate(PRODUCTS)
        self.invalidate(DASHBOARD)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
