from __future__ import annotations
"""A browsing session owning one folder cache and the components sharing it."""
import logging

from .cache import FolderCache
from .listing import ListingClient
from .mutations import MutationCoordinator
from .navigation import NavigationState
from .services import DEFAULT_UPLOAD_EXPIRY


LOGGER = logging.getLogger(__name__)


class ExplorerSession:
    """Wires the cache, listing client, navigation and mutations for one bucket."""

    def __init__(self, service, *, upload_expires_in: int = DEFAULT_UPLOAD_EXPIRY):
        self.service = service
        self.cache = FolderCache()
        self.listing = ListingClient(service, self.cache)
        self.navigation = NavigationState(self.cache, self.listing)
        self.mutations = MutationCoordinator(
            service,
            self.cache,
            self.navigation,
            upload_expires_in=upload_expires_in,
        )

    @property
    def bucket_name(self) -> str:
        return getattr(self.service, "bucket_name", "")

    def open(self, start_prefix: str = ""):
        """Load the root listing and optionally move to ``start_prefix``."""

        LOGGER.debug("Opening session for bucket '%s'", self.bucket_name)
        outcome = self.navigation.load_root()
        if outcome.ok and start_prefix:
            start = self.navigation.navigate_to(start_prefix)
            if start.ok:
                return start
        return outcome

    def fetch_object(self, key: str):
        return self.service.fetch_object(key)
