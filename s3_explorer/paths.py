from __future__ import annotations
"""Prefix and key helpers for delimiter-style object listings."""

DELIMITER = "/"


def normalize_prefix(prefix: str | None) -> str:
    """Return the canonical form of ``prefix``.

    The root prefix is the empty string. Any other prefix has no leading
    slash and exactly one trailing slash.
    """

    cleaned = (prefix or "").strip().lstrip(DELIMITER).rstrip(DELIMITER)
    return f"{cleaned}{DELIMITER}" if cleaned else ""


def label_of(value: str, context_prefix: str) -> str:
    """Return the single path segment to display for ``value`` under ``context_prefix``.

    An empty result means ``value`` denotes the context prefix itself and
    callers must not render it.
    """

    if value.startswith(context_prefix):
        remainder = value[len(context_prefix):]
        return remainder.split(DELIMITER, 1)[0]
    segments = [segment for segment in value.split(DELIMITER) if segment]
    return segments[-1] if segments else ""


def parent_prefix(prefix: str) -> str:
    segments = [segment for segment in prefix.split(DELIMITER) if segment]
    if len(segments) <= 1:
        return ""
    return DELIMITER.join(segments[:-1]) + DELIMITER


def parent_of_key(key: str) -> str:
    """Return the prefix whose listing contains ``key``."""

    trimmed = key.strip().lstrip(DELIMITER).rstrip(DELIMITER)
    if DELIMITER not in trimmed:
        return ""
    return normalize_prefix(trimmed.rsplit(DELIMITER, 1)[0])


def compose_key(prefix: str, name: str) -> str:
    key_name = name.strip()
    if not key_name:
        raise ValueError("Object name cannot be empty")
    if DELIMITER in key_name:
        raise ValueError(f"Object name cannot contain '{DELIMITER}'")
    return f"{normalize_prefix(prefix)}{key_name}"


def breadcrumbs(prefix: str) -> list[tuple[str, str]]:
    crumbs = [("", "")]
    current = ""
    for segment in (s for s in prefix.split(DELIMITER) if s):
        current = f"{current}{segment}{DELIMITER}"
        crumbs.append((segment, current))
    return crumbs
