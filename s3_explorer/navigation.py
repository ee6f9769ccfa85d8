from __future__ import annotations
"""Current-folder and expanded-folder tracking on top of the folder cache."""
import logging
import threading

from .cache import FolderCache
from .errors import BackendUnavailable
from .listing import ListingClient
from .models import BrowserEntry, FetchOutcome, Listing
from .paths import breadcrumbs, label_of, normalize_prefix, parent_prefix


LOGGER = logging.getLogger(__name__)


class NavigationState:
    """Tracks the displayed prefix and the lazily expanded sub-prefixes.

    ``current_prefix`` only ever changes to a prefix whose listing is cached.
    Fetch failures are returned as :class:`FetchOutcome` values and kept per
    prefix until the next successful fetch so a view can offer a retry.
    """

    def __init__(self, cache: FolderCache, listing_client: ListingClient):
        self._cache = cache
        self._listing = listing_client
        self._lock = threading.Lock()
        self._current_prefix = ""
        self._expanded: set[str] = set()
        self._failures: dict[str, BackendUnavailable] = {}

    @property
    def current_prefix(self) -> str:
        with self._lock:
            return self._current_prefix

    @property
    def expanded_prefixes(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._expanded)

    def is_expanded(self, prefix: str) -> bool:
        with self._lock:
            return normalize_prefix(prefix) in self._expanded

    def failure_for(self, prefix: str) -> BackendUnavailable | None:
        with self._lock:
            return self._failures.get(normalize_prefix(prefix))

    def needs_fetch(self, prefix: str) -> bool:
        prefix = normalize_prefix(prefix)
        return not self._cache.has(prefix) and not self._listing.is_in_flight(prefix)

    def pending_fetches(self) -> list[str]:
        """Return the visible prefixes that have no cached listing."""

        with self._lock:
            candidates = {self._current_prefix, *self._expanded}
        return sorted(prefix for prefix in candidates if self.needs_fetch(prefix))

    def load_root(self) -> FetchOutcome:
        return self._ensure_listing("")

    def expand(self, prefix: str) -> FetchOutcome:
        prefix = normalize_prefix(prefix)
        with self._lock:
            self._expanded.add(prefix)
        return self._ensure_listing(prefix)

    def collapse(self, prefix: str) -> None:
        with self._lock:
            self._expanded.discard(normalize_prefix(prefix))

    def toggle(self, prefix: str) -> FetchOutcome | None:
        if self.is_expanded(prefix):
            self.collapse(prefix)
            return None
        return self.expand(prefix)

    def navigate_to(self, prefix: str) -> FetchOutcome:
        prefix = normalize_prefix(prefix)
        outcome = self._ensure_listing(prefix)
        while outcome.ok and not self._cache.has(prefix):
            outcome = self._ensure_listing(prefix)
        if outcome.ok:
            with self._lock:
                self._current_prefix = prefix
            LOGGER.debug("Navigated to '%s'", prefix)
        else:
            LOGGER.debug("Staying at '%s'; '%s' could not be loaded", self.current_prefix, prefix)
        return outcome

    def go_back(self) -> FetchOutcome:
        current = self.current_prefix
        if not current:
            return FetchOutcome(prefix="", listing=self._cache.get(""))
        return self.navigate_to(parent_prefix(current))

    def go_to_root(self) -> FetchOutcome:
        return self.navigate_to("")

    def refresh(self, prefix: str | None = None) -> FetchOutcome:
        """Invalidate and re-fetch ``prefix`` (the current prefix by default)."""

        prefix = self.current_prefix if prefix is None else normalize_prefix(prefix)
        self._cache.invalidate(prefix)
        return self._ensure_listing(prefix)

    def breadcrumbs(self) -> list[tuple[str, str]]:
        return breadcrumbs(self.current_prefix)

    def entries(self, prefix: str | None = None) -> list[BrowserEntry] | None:
        """Return the displayable children of ``prefix``, folders first.

        Returns ``None`` when the prefix has no cached listing.
        """

        prefix = self.current_prefix if prefix is None else normalize_prefix(prefix)
        listing = self._cache.get(prefix)
        if listing is None:
            return None
        return build_entries(listing)

    def _ensure_listing(self, prefix: str) -> FetchOutcome:
        listing = self._cache.get(prefix)
        if listing is not None:
            LOGGER.debug("Cache hit for '%s'", prefix)
            return FetchOutcome(prefix=prefix, listing=listing)
        try:
            listing = self._listing.fetch_children(prefix)
        except BackendUnavailable as exc:
            with self._lock:
                self._failures[prefix] = exc
            return FetchOutcome(prefix=prefix, error=exc)
        with self._lock:
            self._failures.pop(prefix, None)
        return FetchOutcome(prefix=prefix, listing=listing)


def build_entries(listing: Listing) -> list[BrowserEntry]:
    """Label the children of ``listing`` and drop entries that echo the folder itself."""

    context = listing.prefix
    own_label = label_of(context, parent_prefix(context)) if context else ""
    folders: list[BrowserEntry] = []
    files: list[BrowserEntry] = []
    for sub_prefix in listing.sub_prefixes:
        label = label_of(sub_prefix, context)
        if _is_visible(label, own_label):
            folders.append(BrowserEntry(label=label, path=sub_prefix, is_folder=True))
    for entry in listing.files:
        label = label_of(entry.key, context)
        if _is_visible(label, own_label):
            files.append(
                BrowserEntry(
                    label=label,
                    path=entry.key,
                    is_folder=False,
                    size=entry.size,
                    last_modified=entry.last_modified,
                )
            )
    return folders + files


def _is_visible(label: str, own_label: str) -> bool:
    return bool(label) and label != own_label
