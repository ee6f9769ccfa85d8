from __future__ import annotations
"""UI-agnostic helpers for formatting listings."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version

from .models import BrowserEntry

DIST_NAME = "s3-explorer"
SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="S3 Explorer",
            version="",
            summary="Browse a bucket as nested folders.",
            homepage=None,
        )
    homepage = distribution_metadata.get("Home-page")
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        if label.strip().lower() == "homepage" and not homepage:
            homepage = link.strip()
    return PackageInfo(
        name=distribution_metadata.get("Name") or dist_name,
        version=package_version,
        summary=distribution_metadata.get("Summary") or "",
        homepage=homepage or None,
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    value = float(max(size, 0))
    for suffix in SIZE_UNITS:
        if value < 1024 or suffix == SIZE_UNITS[-1]:
            if suffix == "B":
                return f"{int(value)} B"
            return f"{value:.1f}".rstrip("0").rstrip(".") + f" {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: object) -> str:
    if not last_modified:
        return "-"
    if isinstance(last_modified, datetime):
        return last_modified.strftime("%b %d, %Y %H:%M")
    return str(last_modified)


def format_entry(entry: BrowserEntry) -> str:
    if entry.is_folder:
        return f"{entry.label}/"
    return f"{entry.label}  ({format_size(entry.size)}, {format_last_modified(entry.last_modified)})"


def format_location(prefix: str) -> str:
    return f"/{prefix}"
