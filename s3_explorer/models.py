from __future__ import annotations
"""Data models representing prefix listings and in-flight operations."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Optional

from .errors import ExplorerError


@dataclass(frozen=True)
class ObjectEntry:
    """A single leaf object under some prefix."""

    key: str
    size: int = 0
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class Listing:
    """Complete immediate children of one prefix at the moment of fetch.

    Listings are immutable. A refetch replaces the whole value in the cache.
    """

    prefix: str = ""
    files: tuple[ObjectEntry, ...] = ()
    sub_prefixes: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.files and not self.sub_prefixes

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.files]


@dataclass(frozen=True)
class BrowserEntry:
    """A labelled child of a prefix, ready for display."""

    label: str
    path: str
    is_folder: bool
    size: Optional[int] = None
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a navigation or expansion request."""

    prefix: str
    listing: Optional[Listing] = None
    error: Optional[ExplorerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class OperationKind(str, Enum):
    UPLOAD = "upload"
    DELETE = "delete"


class OperationStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PendingOperation:
    """Tracks a mutation against one key."""

    kind: OperationKind
    key: str
    status: OperationStatus = OperationStatus.IN_FLIGHT
    error: Optional[ExplorerError] = None


@dataclass(frozen=True)
class UploadTarget:
    """Short-lived write credential for a single key."""

    key: str
    url: str
    expires_in: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ObjectDownload:
    """Direct pass-through of an object's content."""

    key: str
    body: BinaryIO
    content_type: str = "application/octet-stream"
    filename: str = "download"
    size: Optional[int] = None
