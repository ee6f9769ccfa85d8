from __future__ import annotations
"""Controller layer tying connection profiles to a browsing session."""

import logging
from pathlib import Path
import shutil
from typing import Callable

from botocore.exceptions import BotoCoreError, ClientError

from .errors import BackendUnavailable
from .models import BrowserEntry, FetchOutcome, PendingOperation
from .profiles import ConnectionProfile, ProfileStorage
from .services import S3StorageService, guess_content_type
from .session import ExplorerSession
from .settings import AppSettings


LOGGER = logging.getLogger(__name__)

ServiceFactory = Callable[..., S3StorageService]


class NotConnectedError(RuntimeError):
    """Raised when a storage operation is attempted before connecting."""


class ExplorerController:
    """Coordinates user actions with the active :class:`ExplorerSession`."""

    def __init__(
        self,
        storage: ProfileStorage | None = None,
        *,
        settings: AppSettings | None = None,
        service_factory: ServiceFactory | None = None,
    ):
        self._storage = storage or ProfileStorage()
        self._settings = settings or AppSettings()
        self._service_factory = service_factory or S3StorageService
        self._profiles: list[ConnectionProfile] = self._storage.load()
        self._selected_profile: str | None = None
        self._session: ExplorerSession | None = None

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    @property
    def selected_profile(self) -> str | None:
        return self._selected_profile

    @property
    def session(self) -> ExplorerSession:
        if self._session is None:
            raise NotConnectedError("Not connected to a bucket")
        return self._session

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        if original_name and original_name != profile.name:
            self._profiles = [p for p in self._profiles if p.name != original_name]
        for idx, existing in enumerate(self._profiles):
            if existing.name == profile.name:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.append(profile)
        self._storage.save(self._profiles)

    def delete_profile(self, name: str) -> None:
        remaining = [p for p in self._profiles if p.name != name]
        if len(remaining) == len(self._profiles):
            raise ValueError(f"Profile '{name}' does not exist")
        self._profiles = remaining
        if self._selected_profile == name:
            self._selected_profile = None
        self._storage.save(self._profiles)

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def connect_with_profile(self, name: str, *, start_prefix: str = "") -> FetchOutcome:
        profile = self.get_profile(name)
        outcome = self.connect(
            bucket=profile.bucket,
            endpoint_url=profile.endpoint_url,
            access_key=profile.access_key,
            secret_key=profile.secret_key,
            region=profile.region,
            start_prefix=start_prefix,
        )
        if outcome.ok:
            self._selected_profile = name
        return outcome

    def connect(
        self,
        *,
        bucket: str,
        endpoint_url: str = "",
        access_key: str = "",
        secret_key: str = "",
        region: str = "",
        start_prefix: str = "",
    ) -> FetchOutcome:
        """Open a new session; the previous one is kept if the root cannot be listed."""

        service = self._service_factory(
            bucket,
            endpoint_url=endpoint_url,
            access_key=access_key,
            secret_key=secret_key,
            region=region,
            request_timeout=self._settings.request_timeout,
        )
        session = ExplorerSession(service, upload_expires_in=self._settings.upload_expires_in)
        outcome = session.open(start_prefix)
        if outcome.ok:
            LOGGER.debug("Connected to bucket '%s'", bucket)
            self._session = session
        return outcome

    def disconnect(self) -> None:
        self._session = None
        self._selected_profile = None

    @property
    def current_prefix(self) -> str:
        return self.session.navigation.current_prefix

    def entries(self, prefix: str | None = None) -> list[BrowserEntry] | None:
        return self.session.navigation.entries(prefix)

    def expand(self, prefix: str) -> FetchOutcome:
        return self.session.navigation.expand(prefix)

    def collapse(self, prefix: str) -> None:
        self.session.navigation.collapse(prefix)

    def navigate_to(self, prefix: str) -> FetchOutcome:
        return self.session.navigation.navigate_to(prefix)

    def go_back(self) -> FetchOutcome:
        return self.session.navigation.go_back()

    def go_to_root(self) -> FetchOutcome:
        return self.session.navigation.go_to_root()

    def refresh(self, prefix: str | None = None) -> FetchOutcome:
        return self.session.navigation.refresh(prefix)

    def upload_object(
        self,
        *,
        source_path: str | Path,
        target_prefix: str,
        name: str | None = None,
        content_type: str | None = None,
    ) -> PendingOperation:
        return self.session.mutations.upload(
            source_path,
            target_prefix,
            name=name,
            content_type=content_type or guess_content_type(name or source_path),
        )

    def delete_object(self, key: str) -> PendingOperation:
        return self.session.mutations.delete(key)

    def download_object(self, *, key: str, destination: str | Path) -> Path:
        """Stream ``key`` into ``destination``.

        A directory destination receives the object's download filename.
        """

        try:
            download = self.session.fetch_object(key)
        except (BotoCoreError, ClientError) as exc:
            raise BackendUnavailable(key, str(exc)) from exc
        target = Path(destination)
        if target.is_dir():
            target = target / download.filename
        try:
            with open(target, "wb") as handle:
                shutil.copyfileobj(download.body, handle)
        finally:
            close = getattr(download.body, "close", None)
            if close:
                close()
        return target
