from __future__ import annotations
"""Deduplicated fetching of prefix listings into the folder cache."""
from concurrent.futures import Future
import logging
import threading

from botocore.exceptions import BotoCoreError, ClientError

from .cache import FolderCache
from .errors import BackendUnavailable
from .models import Listing
from .paths import normalize_prefix


LOGGER = logging.getLogger(__name__)


class ListingClient:
    """Fetches single-level listings and stores them in a :class:`FolderCache`.

    Only one backend call per prefix is in flight at a time. Callers that
    ask for a prefix while a fetch for the same cache generation is running
    wait for that fetch and receive its result or its error.
    """

    def __init__(self, service, cache: FolderCache):
        self._service = service
        self._cache = cache
        self._lock = threading.Lock()
        self._in_flight: dict[str, tuple[int, Future]] = {}

    def is_in_flight(self, prefix: str) -> bool:
        with self._lock:
            return normalize_prefix(prefix) in self._in_flight

    def fetch_children(self, prefix: str) -> Listing:
        """Fetch the listing for ``prefix`` and cache it.

        A listing that was invalidated while its request was running is
        discarded and fetched again, so the returned listing is the one that
        was current when it was cached.

        Raises:
            BackendUnavailable: when the storage call fails. Any cached
                listing for ``prefix`` is left as it was.
        """

        prefix = normalize_prefix(prefix)
        listing, stored = self._fetch_once(prefix)
        while not stored:
            cached = self._cache.get(prefix)
            if cached is not None:
                return cached
            LOGGER.debug("Listing of '%s' went stale while in flight; fetching again", prefix)
            listing, stored = self._fetch_once(prefix)
        return listing

    def _fetch_once(self, prefix: str) -> tuple[Listing, bool]:
        with self._lock:
            generation = self._cache.generation(prefix)
            running = self._in_flight.get(prefix)
            if running and running[0] == generation:
                LOGGER.debug("Joining in-flight fetch for '%s'", prefix)
                future = running[1]
                owner = False
            else:
                future = Future()
                self._in_flight[prefix] = (generation, future)
                owner = True

        if not owner:
            listing = future.result()
            return listing, self._cache.generation(prefix) == generation

        try:
            listing = self._request(prefix)
        except Exception as exc:
            future.set_exception(exc)
            raise
        else:
            stored = self._cache.put_if_current(prefix, listing, generation)
            future.set_result(listing)
            return listing, stored
        finally:
            with self._lock:
                current = self._in_flight.get(prefix)
                if current and current[1] is future:
                    del self._in_flight[prefix]

    def _request(self, prefix: str) -> Listing:
        LOGGER.debug("Fetching children of '%s'", prefix)
        try:
            listing = self._service.list_children(prefix)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning("Listing '%s' failed: %s", prefix, exc)
            raise BackendUnavailable(prefix, str(exc)) from exc
        if listing.prefix != prefix:
            listing = Listing(prefix=prefix, files=listing.files, sub_prefixes=listing.sub_prefixes)
        return listing
