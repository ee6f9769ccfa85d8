from __future__ import annotations
"""View-agnostic presenter that runs explorer operations in the background."""
from dataclasses import replace
import logging
from pathlib import Path
import threading
from typing import Callable

from botocore.exceptions import BotoCoreError, ClientError

from .controller import ExplorerController
from .errors import ExplorerError
from .models import BrowserEntry, FetchOutcome, OperationStatus, PendingOperation
from .profiles import ConnectionProfile
from .settings import AppSettings, SettingsStorage
from .ui_utils import PackageInfo, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]
OutcomeFn = Callable[[FetchOutcome], None]

LOGGER = logging.getLogger(__name__)


def _format_error(exc: Exception) -> str:
    return str(exc)


class ExplorerPresenter:
    """Runs controller operations on worker threads and reports via callbacks.

    Callbacks are passed through ``dispatch`` so a view can marshal them onto
    its own event loop.
    """

    def __init__(
        self,
        *,
        controller: ExplorerController | None = None,
        settings_storage: SettingsStorage | None = None,
        dispatch: DispatchFn | None = None,
    ) -> None:
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._controller = controller or ExplorerController(settings=self._settings)
        self._dispatch = dispatch or (lambda func: func())
        self._package_info = load_package_info()

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def is_connected(self) -> bool:
        return self._controller.is_connected

    @property
    def selected_profile(self) -> str | None:
        return self._controller.selected_profile

    @property
    def current_prefix(self) -> str:
        return self._controller.current_prefix

    def entries(self, prefix: str | None = None) -> list[BrowserEntry] | None:
        return self._controller.entries(prefix)

    def breadcrumbs(self) -> list[tuple[str, str]]:
        return self._controller.session.navigation.breadcrumbs()

    def is_expanded(self, prefix: str) -> bool:
        return self._controller.session.navigation.is_expanded(prefix)

    def pending_fetches(self) -> list[str]:
        return self._controller.session.navigation.pending_fetches()

    def operation_status(self, key: str) -> OperationStatus:
        return self._controller.session.mutations.status(key)

    def save_settings(self, settings: AppSettings) -> None:
        self._settings = settings
        self._settings_storage.save(settings)

    def update_last_prefix(self, prefix: str) -> None:
        if not self._settings.remember_last_prefix:
            return
        self._settings = replace(self._settings, last_prefix=prefix or "")
        self._settings_storage.save(self._settings)

    def update_last_connection(self, connection: str) -> None:
        if not self._settings.remember_last_prefix:
            return
        self._settings = replace(self._settings, last_connection=connection or "")
        self._settings_storage.save(self._settings)

    def maybe_auto_connect_profile(self) -> str | None:
        if not self._settings.remember_last_prefix:
            return None
        return self._settings.last_connection or None

    def list_profiles(self) -> list[ConnectionProfile]:
        return self._controller.list_profiles()

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        self._controller.save_profile(profile, original_name=original_name)

    def delete_profile(self, name: str) -> None:
        self._controller.delete_profile(name)

    def connect(
        self,
        *,
        profile_name: str,
        on_success: OutcomeFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Connecting using profile '%s'", profile_name)
        start_prefix = ""
        if self._settings.remember_last_prefix and self._settings.last_connection == profile_name:
            start_prefix = self._settings.last_prefix

        def call() -> FetchOutcome:
            outcome = self._controller.connect_with_profile(profile_name, start_prefix=start_prefix)
            if outcome.ok:
                self.update_last_connection(profile_name)
            return outcome

        self._run_fetch(f"connect to profile '{profile_name}'", call, on_success, on_error, on_done)

    def connect_with(
        self,
        *,
        bucket: str,
        endpoint_url: str = "",
        access_key: str = "",
        secret_key: str = "",
        region: str = "",
        on_success: OutcomeFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Connecting to bucket '%s'", bucket)

        def call() -> FetchOutcome:
            return self._controller.connect(
                bucket=bucket,
                endpoint_url=endpoint_url,
                access_key=access_key,
                secret_key=secret_key,
                region=region,
            )

        self._run_fetch(f"connect to bucket '{bucket}'", call, on_success, on_error, on_done)

    def expand(self, *, prefix: str, on_success: OutcomeFn, on_error: ErrorFn, on_done: DoneFn | None = None) -> None:
        self._run_fetch(
            f"expand '{prefix}'", lambda: self._controller.expand(prefix), on_success, on_error, on_done
        )

    def collapse(self, prefix: str) -> None:
        self._controller.collapse(prefix)

    def navigate_to(
        self, *, prefix: str, on_success: OutcomeFn, on_error: ErrorFn, on_done: DoneFn | None = None
    ) -> None:
        self._run_fetch(
            f"navigate to '{prefix}'",
            lambda: self._remember(self._controller.navigate_to(prefix)),
            on_success,
            on_error,
            on_done,
        )

    def go_back(self, *, on_success: OutcomeFn, on_error: ErrorFn, on_done: DoneFn | None = None) -> None:
        self._run_fetch(
            "go back", lambda: self._remember(self._controller.go_back()), on_success, on_error, on_done
        )

    def go_to_root(self, *, on_success: OutcomeFn, on_error: ErrorFn, on_done: DoneFn | None = None) -> None:
        self._run_fetch(
            "go to root", lambda: self._remember(self._controller.go_to_root()), on_success, on_error, on_done
        )

    def refresh(
        self,
        *,
        prefix: str | None = None,
        on_success: OutcomeFn,
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        self._run_fetch(
            f"refresh '{prefix or ''}'", lambda: self._controller.refresh(prefix), on_success, on_error, on_done
        )

    def upload_object(
        self,
        *,
        source_path: str | Path,
        target_prefix: str,
        name: str | None = None,
        on_success: Callable[[PendingOperation], None] | None = None,
        on_error: ErrorFn | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Uploading '%s' into '%s'", source_path, target_prefix)
        self._run_mutation(
            f"upload '{source_path}'",
            lambda: self._controller.upload_object(
                source_path=source_path, target_prefix=target_prefix, name=name
            ),
            on_success,
            on_error,
            on_done,
        )

    def delete_object(
        self,
        *,
        key: str,
        on_success: Callable[[PendingOperation], None] | None = None,
        on_error: ErrorFn | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Deleting '%s'", key)
        self._run_mutation(
            f"delete '{key}'", lambda: self._controller.delete_object(key), on_success, on_error, on_done
        )

    def download_object(
        self,
        *,
        key: str,
        destination: str | Path,
        on_success: Callable[[Path], None] | None = None,
        on_error: ErrorFn | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        def task() -> None:
            try:
                path = self._controller.download_object(key=key, destination=destination)
            except (BotoCoreError, ClientError, ExplorerError, OSError) as exc:
                LOGGER.exception("Download error for '%s'", key)
                if on_error:
                    self._dispatch(lambda: on_error(_format_error(exc)))
            except Exception as exc:
                LOGGER.exception("Unexpected download error for '%s'", key)
                if on_error:
                    self._dispatch(lambda: on_error(_format_error(exc)))
            else:
                if on_success:
                    self._dispatch(lambda: on_success(path))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()

    def _remember(self, outcome: FetchOutcome) -> FetchOutcome:
        if outcome.ok:
            self.update_last_prefix(self._controller.current_prefix)
        return outcome

    def _run_fetch(
        self,
        description: str,
        call: Callable[[], FetchOutcome],
        on_success: OutcomeFn,
        on_error: ErrorFn,
        on_done: DoneFn | None,
    ) -> None:
        def task() -> None:
            try:
                outcome = call()
            except Exception as exc:
                LOGGER.exception("Unexpected error trying to %s", description)
                self._dispatch(lambda: on_error(_format_error(exc)))
            else:
                if outcome.ok:
                    LOGGER.debug("Finished: %s", description)
                    self._dispatch(lambda: on_success(outcome))
                else:
                    LOGGER.debug("Failed to %s: %s", description, outcome.error)
                    self._dispatch(lambda: on_error(_format_error(outcome.error)))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()

    def _run_mutation(
        self,
        description: str,
        call: Callable[[], PendingOperation],
        on_success: Callable[[PendingOperation], None] | None,
        on_error: ErrorFn | None,
        on_done: DoneFn | None,
    ) -> None:
        def task() -> None:
            try:
                operation = call()
            except Exception as exc:
                LOGGER.exception("Unexpected error trying to %s", description)
                if on_error:
                    self._dispatch(lambda: on_error(_format_error(exc)))
            else:
                if operation.status is OperationStatus.DONE:
                    if on_success:
                        self._dispatch(lambda: on_success(operation))
                elif on_error:
                    self._dispatch(lambda: on_error(_format_error(operation.error)))
            finally:
                if on_done:
                    self._dispatch(on_done)

        threading.Thread(target=task, daemon=True).start()
