"""Errors reported by the explorer core to the presentation layer."""


class ExplorerError(RuntimeError):
    """Base class for classified storage failures.

    ``target`` is the affected key or prefix and ``cause`` a human-readable
    reason.
    """

    action = "Operation failed"

    def __init__(self, target: str, cause: str):
        super().__init__(f"{self.action} for '{target or '/'}': {cause}")
        self.target = target
        self.cause = cause


class BackendUnavailable(ExplorerError):
    """Raised when a listing or download cannot be served by the backend."""

    action = "Backend unavailable"


class UploadFailed(ExplorerError):
    action = "Upload failed"


class DeleteFailed(ExplorerError):
    action = "Delete failed"
