from __future__ import annotations
"""Storage collaborator backed by an S3-compatible bucket."""
import logging
import mimetypes
from pathlib import Path
from typing import Callable

import boto3
from botocore.client import Config
import requests

from .models import Listing, ObjectDownload, ObjectEntry, UploadTarget
from .paths import DELIMITER, normalize_prefix


LOGGER = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_UPLOAD_EXPIRY = 3600


class S3StorageService:
    """Single-level listing, presigned uploads, deletes and downloads for one bucket."""

    def __init__(
        self,
        bucket_name: str,
        *,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        client_factory: Callable[..., object] | None = None,
        http_session: requests.Session | None = None,
        request_timeout: float = 60,
    ):
        if not bucket_name:
            raise ValueError("bucket_name is required")
        self.bucket_name = bucket_name
        self._endpoint_url = endpoint_url or None
        self._access_key = access_key or None
        self._secret_key = secret_key or None
        self._region = region or None
        self._client_factory = client_factory or boto3.client
        self._http = http_session or requests.Session()
        self._request_timeout = request_timeout
        self._client = None

    def list_children(self, prefix: str) -> Listing:
        """Return the immediate children of ``prefix``.

        Follows continuation tokens so the listing of one level is complete.

        Raises:
            BotoCoreError | ClientError: when the bucket cannot be listed.
        """

        prefix = normalize_prefix(prefix)
        client = self._get_client()
        files: list[ObjectEntry] = []
        sub_prefixes: list[str] = []
        token: str | None = None
        while True:
            params = {"Bucket": self.bucket_name, "Delimiter": DELIMITER}
            if prefix:
                params["Prefix"] = prefix
            if token:
                params["ContinuationToken"] = token
            response = client.list_objects_v2(**params)
            for obj in response.get("Contents", []):
                files.append(
                    ObjectEntry(
                        key=obj["Key"],
                        size=int(obj.get("Size") or 0),
                        last_modified=obj.get("LastModified"),
                    )
                )
            sub_prefixes.extend(common["Prefix"] for common in response.get("CommonPrefixes", []))
            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
        LOGGER.debug(
            "Listed '%s': %d file(s), %d folder(s)", prefix, len(files), len(sub_prefixes)
        )
        return Listing(prefix=prefix, files=tuple(files), sub_prefixes=tuple(sub_prefixes))

    def issue_upload_target(
        self,
        key: str,
        *,
        expires_in: int = DEFAULT_UPLOAD_EXPIRY,
        content_type: str | None = None,
    ) -> UploadTarget:
        """Create a presigned PUT URL for ``key``."""

        key = _require_key(key)
        if expires_in <= 0:
            raise ValueError("expires_in must be greater than zero")
        params: dict[str, str] = {"Bucket": self.bucket_name, "Key": key}
        headers: dict[str, str] = {}
        if content_type:
            params["ContentType"] = content_type
            headers["Content-Type"] = content_type
        url = self._get_client().generate_presigned_url(
            "put_object",
            Params=params,
            ExpiresIn=expires_in,
        )
        return UploadTarget(key=key, url=url, expires_in=expires_in, headers=headers)

    def upload_to_target(self, target: UploadTarget, source_path: str | Path) -> None:
        """Send the file at ``source_path`` to a presigned upload target.

        Raises:
            requests.RequestException: when the transfer is rejected.
        """

        with open(source_path, "rb") as handle:
            response = self._http.put(
                target.url,
                data=handle,
                headers=dict(target.headers),
                timeout=self._request_timeout,
            )
        response.raise_for_status()

    def delete_object(self, key: str) -> None:
        key = _require_key(key)
        self._get_client().delete_object(Bucket=self.bucket_name, Key=key)

    def fetch_object(self, key: str) -> ObjectDownload:
        """Open a streaming download for ``key``. Content is never cached."""

        key = _require_key(key)
        response = self._get_client().get_object(Bucket=self.bucket_name, Key=key)
        return ObjectDownload(
            key=key,
            body=response["Body"],
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            filename=download_filename(key),
            size=response.get("ContentLength"),
        )

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory(
                "s3",
                endpoint_url=self._endpoint_url,
                aws_access_key_id=self._access_key,
                aws_secret_access_key=self._secret_key,
                region_name=self._region,
                config=Config(signature_version="s3v4"),
            )
        return self._client


def download_filename(key: str) -> str:
    name = key.rstrip(DELIMITER).rsplit(DELIMITER, 1)[-1]
    return name or "download"


def guess_content_type(path: str | Path) -> str | None:
    content_type, _ = mimetypes.guess_type(str(path))
    return content_type


def _require_key(key: str) -> str:
    if not key or not key.strip():
        raise ValueError("Missing key")
    return key
