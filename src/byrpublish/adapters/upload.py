"""
Archive file upload.

Uploading a file to the archive is three steps:

1. Hash the file locally (MD5, in 5 MiB chunks). The hash is the file id.
2. Ask the archive for short-lived object-storage credentials for the key
   ``<md5>.<ext>``. The archive refuses keys that already exist.
3. Multipart-upload the file straight to object storage with boto3.

Hashing and uploading both accept a ``threading.Event``; setting it
cancels between chunks and raises UploadCancelledError.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import boto3
import requests
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from byrpublish.core.exceptions import (
    FileExistsRemoteError,
    UploadCancelledError,
    UploadError,
)
from byrpublish.core.validation import FILES_URL_PREFIX


CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_CREDENTIALS_URL = "https://byrdocs.org/api/s3/upload"

ProgressCallback = Callable[[int, int], None]


def compute_md5(
    path: Path | str,
    cancel: threading.Event | None = None,
    progress: ProgressCallback | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> str:
    """
    MD5 hex digest of a file, read chunk by chunk.

    Raises:
        UploadCancelledError: If ``cancel`` is set before hashing finishes.
    """
    path = Path(path)
    total = path.stat().st_size
    digest = hashlib.md5(usedforsecurity=False)
    done = 0
    with path.open("rb") as fh:
        while True:
            if cancel is not None and cancel.is_set():
                raise UploadCancelledError("MD5 calculation was cancelled")
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
            done += len(chunk)
            if progress:
                progress(done, total)
    return digest.hexdigest()


@dataclass
class S3Credentials:
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None


@dataclass
class UploadTarget:
    """Where and how to upload one object."""

    key: str
    host: str
    bucket: str
    credentials: S3Credentials
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def tagging(self) -> str | None:
        if not self.tags:
            return None
        return "&".join(f"{k}={v}" for k, v in self.tags.items())

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> UploadTarget:
        creds = data.get("credentials") or {}
        if not (data.get("host") and data.get("bucket") and data.get("key") and creds):
            raise UploadError("Invalid S3 configuration in credentials response")
        return cls(
            key=data["key"],
            host=data["host"],
            bucket=data["bucket"],
            credentials=S3Credentials(
                access_key_id=creds.get("access_key_id", ""),
                secret_access_key=creds.get("secret_access_key", ""),
                session_token=creds.get("session_token"),
            ),
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
        )


@dataclass
class UploadResult:
    key: str
    md5: str
    size: int

    @property
    def url(self) -> str:
        return f"{FILES_URL_PREFIX}{self.key}"


class ArchiveUploader:
    """Uploads local files into the archive's object storage."""

    def __init__(
        self,
        token: str,
        credentials_url: str = DEFAULT_CREDENTIALS_URL,
        part_size: int = CHUNK_SIZE,
        allowed_extensions: tuple[str, ...] = ("pdf", "zip"),
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        self.token = token
        self.credentials_url = credentials_url
        self.part_size = part_size
        self.allowed_extensions = allowed_extensions
        self.timeout = timeout
        self._session = session or requests.Session()
        self.logger = logging.getLogger("ArchiveUploader")

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    def request_target(self, key: str) -> UploadTarget:
        """
        Request upload credentials for ``key``.

        Raises:
            FileExistsRemoteError: If the archive already has the key.
            UploadError: On any other refusal or transport failure.
        """
        if not self.token:
            raise UploadError("No upload token configured")

        try:
            response = self._session.post(
                self.credentials_url,
                json={"key": key},
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UploadError("Failed to request upload credentials", cause=e) from e

        if not response.ok:
            raise UploadError(f"Upload credentials request failed with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise UploadError("Upload credentials response was not JSON", cause=e) from e

        if not data.get("success"):
            if data.get("code") == "FILE_EXISTS":
                raise FileExistsRemoteError(key)
            raise UploadError(data.get("error") or "获取上传凭证失败")

        return UploadTarget.from_response(data)

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def _s3_client(self, target: UploadTarget) -> Any:
        return boto3.client(
            "s3",
            region_name="auto",
            endpoint_url=target.host,
            aws_access_key_id=target.credentials.access_key_id,
            aws_secret_access_key=target.credentials.secret_access_key,
            aws_session_token=target.credentials.session_token,
            config=Config(s3={"addressing_style": "path"}),
        )

    def upload_file(
        self,
        path: Path | str,
        target: UploadTarget,
        cancel: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """
        Multipart-upload ``path`` to ``target``.

        The multipart upload is aborted if any part fails, the file cannot
        be read, or the upload is cancelled or interrupted, so no orphaned
        parts are left behind. ``cancel`` is checked before each part.
        """
        path = Path(path)
        total = path.stat().st_size
        s3 = self._s3_client(target)

        create_args: dict[str, Any] = {"Bucket": target.bucket, "Key": target.key}
        if target.tagging:
            create_args["Tagging"] = target.tagging

        try:
            upload_id = s3.create_multipart_upload(**create_args)["UploadId"]
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"Failed to start upload of {target.key}", cause=e) from e

        parts: list[dict[str, Any]] = []
        sent = 0
        try:
            with path.open("rb") as fh:
                part_number = 1
                while True:
                    if cancel is not None and cancel.is_set():
                        raise UploadCancelledError(f"Upload of {target.key} was cancelled")
                    chunk = fh.read(self.part_size)
                    if not chunk and parts:
                        break
                    response = s3.upload_part(
                        Bucket=target.bucket,
                        Key=target.key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=chunk,
                    )
                    parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                    sent += len(chunk)
                    if progress:
                        progress(sent, total)
                    if not chunk:
                        break
                    part_number += 1

            s3.complete_multipart_upload(
                Bucket=target.bucket,
                Key=target.key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except UploadCancelledError:
            self._abort(s3, target, upload_id)
            raise
        except (BotoCoreError, ClientError) as e:
            self._abort(s3, target, upload_id)
            raise UploadError(f"Upload of {target.key} failed", cause=e) from e
        except OSError as e:
            self._abort(s3, target, upload_id)
            raise UploadError(f"Failed to read {path}", cause=e) from e
        except BaseException:
            self._abort(s3, target, upload_id)
            raise

        self.logger.info(f"Uploaded {target.key} ({sent} bytes, {len(parts)} parts)")

    def _abort(self, s3: Any, target: UploadTarget, upload_id: str) -> None:
        try:
            s3.abort_multipart_upload(Bucket=target.bucket, Key=target.key, UploadId=upload_id)
        except (BotoCoreError, ClientError) as e:
            self.logger.warning(f"Failed to abort multipart upload {upload_id}: {e}")

    def upload(
        self,
        path: Path | str,
        cancel: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Hash, request credentials for and upload one file."""
        path = Path(path)
        extension = path.suffix.lstrip(".").lower()
        if extension not in self.allowed_extensions:
            raise UploadError(f"只支持 {', '.join(self.allowed_extensions)} 格式的文件")

        md5 = compute_md5(path, cancel=cancel)
        key = f"{md5}.{extension}"
        target = self.request_target(key)
        self.upload_file(path, target, cancel=cancel, progress=progress)
        return UploadResult(key=key, md5=md5, size=path.stat().st_size)
