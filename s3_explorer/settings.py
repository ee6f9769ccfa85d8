from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass
import json
from pathlib import Path


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    upload_expires_in: int = 3600
    request_timeout: int = 60
    remember_last_prefix: bool = True
    last_prefix: str = ""
    last_connection: str = ""


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_explorer_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        remember = data.get("remember_last_prefix", AppSettings.remember_last_prefix)
        return AppSettings(
            upload_expires_in=_positive_int(data.get("upload_expires_in"), AppSettings.upload_expires_in),
            request_timeout=_positive_int(data.get("request_timeout"), AppSettings.request_timeout),
            remember_last_prefix=remember if isinstance(remember, bool) else AppSettings.remember_last_prefix,
            last_prefix=_string(data.get("last_prefix")),
            last_connection=_string(data.get("last_connection")),
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["upload_expires_in"] = max(int(settings.upload_expires_in), 1)
        payload["request_timeout"] = max(int(settings.request_timeout), 1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return


def _positive_int(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _string(value: object) -> str:
    return value if isinstance(value, str) else ""
