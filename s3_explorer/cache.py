from __future__ import annotations
"""Per-session cache of prefix listings."""
import logging
import threading

from .models import Listing
from .paths import normalize_prefix


LOGGER = logging.getLogger(__name__)


class FolderCache:
    """Maps a normalized prefix to its last fetched :class:`Listing`.

    A missing entry means "unknown", never "empty". Every invalidation bumps
    a per-prefix generation so that a fetch started earlier can be detected
    and discarded by :meth:`put_if_current`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Listing] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    def get(self, prefix: str) -> Listing | None:
        with self._lock:
            return self._entries.get(normalize_prefix(prefix))

    def has(self, prefix: str) -> bool:
        with self._lock:
            return normalize_prefix(prefix) in self._entries

    def put(self, prefix: str, listing: Listing) -> None:
        with self._lock:
            self._entries[normalize_prefix(prefix)] = listing

    def put_if_current(self, prefix: str, listing: Listing, generation: int) -> bool:
        prefix = normalize_prefix(prefix)
        with self._lock:
            if self._current_generation(prefix) != generation:
                LOGGER.debug("Discarding stale listing for '%s' (generation %d)", prefix, generation)
                return False
            self._entries[prefix] = listing
            return True

    def invalidate(self, prefix: str) -> bool:
        """Drop the entry for exactly ``prefix``. Descendants are kept."""

        prefix = normalize_prefix(prefix)
        with self._lock:
            self._generations[prefix] = self._generations.get(prefix, 0) + 1
            removed = self._entries.pop(prefix, None) is not None
        LOGGER.debug("Invalidated '%s' (cached=%s)", prefix, removed)
        return removed

    def generation(self, prefix: str) -> int:
        with self._lock:
            return self._current_generation(normalize_prefix(prefix))

    def prefixes(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        """Drop every entry and outdate every fetch in progress."""

        with self._lock:
            self._epoch += 1
            self._entries.clear()

    def _current_generation(self, prefix: str) -> int:
        # Both counters only grow, so any invalidation or clear changes the sum.
        return self._epoch + self._generations.get(prefix, 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, prefix: object) -> bool:
        return isinstance(prefix, str) and self.has(prefix)
