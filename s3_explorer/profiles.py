from __future__ import annotations
"""Saved bucket connections with secrets kept in the OS keychain."""
from dataclasses import dataclass
import json
import logging
from pathlib import Path

import keyring
from keyring.errors import KeyringError


LOGGER = logging.getLogger(__name__)

PUBLIC_FIELDS = ("name", "endpoint_url", "access_key", "bucket", "region")


@dataclass
class ConnectionProfile:
    """Represents a saved connection to one bucket."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str
    bucket: str
    region: str = ""

    def public_fields(self) -> dict[str, str]:
        return {field_name: getattr(self, field_name) for field_name in PUBLIC_FIELDS}


class KeychainStore:
    """Secret-key lookups in the OS keychain, keyed by profile name."""

    def __init__(self, service_name: str = "s3-explorer"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError as exc:
            LOGGER.warning("Keychain lookup failed for '%s': %s", profile_name, exc)
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name:
            return
        if not secret_key:
            self.delete_secret(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError as exc:
            LOGGER.warning("Keychain update failed for '%s': %s", profile_name, exc)

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            return


class ProfileStorage:
    """JSON file of connection profiles; secret keys never touch the file."""

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_explorer_connections.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        entries = self._read_entries()
        profiles: list[ConnectionProfile] = []
        migrated = False
        for entry in entries:
            try:
                name = entry["name"]
                bucket = entry["bucket"]
            except KeyError:
                continue
            secret_key = entry.get("secret_key") or ""
            if secret_key:
                # Older files stored the secret inline; move it to the keychain.
                self._keychain.set_secret(name, secret_key)
                migrated = True
            else:
                secret_key = self._keychain.get_secret(name)
            profiles.append(
                ConnectionProfile(
                    name=name,
                    endpoint_url=entry.get("endpoint_url") or "",
                    access_key=entry.get("access_key") or "",
                    secret_key=secret_key,
                    bucket=bucket,
                    region=entry.get("region") or "",
                )
            )
        if migrated:
            self._write_entries([profile.public_fields() for profile in profiles])
        return profiles

    def save(self, profiles: list[ConnectionProfile]) -> None:
        previous_names = {entry.get("name") for entry in self._read_entries()}
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
        for name in previous_names - {profile.name for profile in profiles}:
            if isinstance(name, str):
                self._keychain.delete_secret(name)
        self._write_entries([profile.public_fields() for profile in profiles])

    def _read_entries(self) -> list[dict]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def _write_entries(self, entries: list[dict[str, str]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
