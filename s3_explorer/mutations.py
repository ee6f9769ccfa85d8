from __future__ import annotations
"""Uploads and deletes with scoped cache invalidation."""
import logging
from pathlib import Path
import threading

from botocore.exceptions import BotoCoreError, ClientError
import requests

from .cache import FolderCache
from .errors import DeleteFailed, ExplorerError, UploadFailed
from .models import OperationKind, OperationStatus, PendingOperation
from .navigation import NavigationState
from .paths import compose_key, normalize_prefix, parent_of_key
from .services import DEFAULT_UPLOAD_EXPIRY


LOGGER = logging.getLogger(__name__)

TRANSFER_ERRORS = (BotoCoreError, ClientError, requests.RequestException, OSError)


class MutationCoordinator:
    """Runs uploads and deletes and invalidates the listings they make stale.

    Each key moves through ``IDLE -> IN_FLIGHT -> DONE | FAILED``. Only the
    immediate parent listing of the affected key is invalidated; it is
    re-fetched right away when it is the prefix currently displayed.
    """

    def __init__(
        self,
        service,
        cache: FolderCache,
        navigation: NavigationState,
        *,
        upload_expires_in: int = DEFAULT_UPLOAD_EXPIRY,
    ):
        self._service = service
        self._cache = cache
        self._navigation = navigation
        self._upload_expires_in = upload_expires_in
        self._lock = threading.Lock()
        self._pending: dict[str, PendingOperation] = {}
        self._failures: dict[str, ExplorerError] = {}

    def pending_operations(self) -> list[PendingOperation]:
        with self._lock:
            return list(self._pending.values())

    def status(self, key: str) -> OperationStatus:
        with self._lock:
            operation = self._pending.get(key)
        return operation.status if operation else OperationStatus.IDLE

    def failure_for(self, key: str) -> ExplorerError | None:
        with self._lock:
            return self._failures.get(key)

    def upload(
        self,
        source_path: str | Path,
        target_prefix: str,
        *,
        name: str | None = None,
        content_type: str | None = None,
    ) -> PendingOperation:
        """Upload a local file into ``target_prefix``.

        Returns the settled operation; failures are reported through its
        ``status`` and ``error`` fields.
        """

        target_prefix = normalize_prefix(target_prefix)
        key = compose_key(target_prefix, name or Path(source_path).name)
        operation = self._begin(OperationKind.UPLOAD, key)
        if operation.status is OperationStatus.FAILED:
            return operation
        try:
            target = self._service.issue_upload_target(
                key,
                expires_in=self._upload_expires_in,
                content_type=content_type,
            )
            self._service.upload_to_target(target, source_path)
        except TRANSFER_ERRORS as exc:
            LOGGER.warning("Upload of '%s' failed: %s", key, exc)
            return self._settle(operation, UploadFailed(key, str(exc)))
        LOGGER.debug("Uploaded '%s'", key)
        self._invalidate(target_prefix)
        return self._settle(operation)

    def delete(self, key: str) -> PendingOperation:
        """Delete ``key`` and invalidate the listing of its parent prefix."""

        if not key or not key.strip():
            raise ValueError("Missing key")
        operation = self._begin(OperationKind.DELETE, key)
        if operation.status is OperationStatus.FAILED:
            return operation
        try:
            self._service.delete_object(key)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning("Delete of '%s' failed: %s", key, exc)
            return self._settle(operation, DeleteFailed(key, str(exc)))
        LOGGER.debug("Deleted '%s'", key)
        self._invalidate(parent_of_key(key))
        return self._settle(operation)

    def _begin(self, kind: OperationKind, key: str) -> PendingOperation:
        with self._lock:
            if key in self._pending:
                error_type = UploadFailed if kind is OperationKind.UPLOAD else DeleteFailed
                running = self._pending[key].kind.value
                return PendingOperation(
                    kind=kind,
                    key=key,
                    status=OperationStatus.FAILED,
                    error=error_type(key, f"{running} already in progress"),
                )
            operation = PendingOperation(kind=kind, key=key)
            self._pending[key] = operation
            self._failures.pop(key, None)
        return operation

    def _settle(self, operation: PendingOperation, error: ExplorerError | None = None) -> PendingOperation:
        with self._lock:
            self._pending.pop(operation.key, None)
            if error is not None:
                self._failures[operation.key] = error
        operation.error = error
        operation.status = OperationStatus.FAILED if error else OperationStatus.DONE
        return operation

    def _invalidate(self, prefix: str) -> None:
        self._cache.invalidate(prefix)
        if prefix == self._navigation.current_prefix:
            outcome = self._navigation.refresh(prefix)
            if not outcome.ok:
                LOGGER.warning("Refreshing '%s' after a change failed: %s", prefix, outcome.error)
