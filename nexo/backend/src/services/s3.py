"""Object storage for attachment bytes (S3, or a local directory)."""

from __future__ import annotations

import mimetypes
import re
import urllib.parse
from io import BytesIO
from pathlib import Path
from uuid import uuid4

import boto3
import structlog
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ..core.config import get_settings

LOGGER = structlog.get_logger(__name__)

StorageError = (BotoCoreError, ClientError, NoCredentialsError, OSError)


def _local_bucket_root() -> Path:
    root = Path(get_settings().local_storage_path)
    root.mkdir(parents=True, exist_ok=True)
    return root


def is_local_mode() -> bool:
    return get_settings().aws_s3_bucket.lower() == "local"


def _client() -> BaseClient:
    settings = get_settings()
    client_kwargs: dict[str, object] = {
        "config": Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
        "region_name": settings.aws_region,
    }
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    return boto3.client("s3", **client_kwargs)


def safe_filename(filename: str) -> str:
    cleaned = re.sub(r"[\\/]+", "_", filename or "").strip()
    cleaned = re.sub(r"_+", "_", cleaned)
    return cleaned or "file"


def build_object_key(filename: str, *, folder: str) -> str:
    """Return a collision-free key such as ``tickets/12/<uuid>/report.pdf``."""

    return f"{folder.strip('/')}/{uuid4().hex}/{safe_filename(filename)}"


def determine_content_type(filename: str, content_type: str | None = None) -> str:
    return content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"


def upload_bytes(data: bytes, *, key: str, content_type: str) -> str:
    """Store ``data`` under ``key`` and return the key."""

    if is_local_mode():
        destination = _local_bucket_root() / key
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        LOGGER.info("stored_local", key=key, path=str(destination))
        return key

    settings = get_settings()
    try:
        _client().upload_fileobj(
            Fileobj=BytesIO(data),
            Bucket=settings.aws_s3_bucket,
            Key=key,
            ExtraArgs={"ContentType": content_type},
        )
    except (BotoCoreError, ClientError, NoCredentialsError) as exc:
        LOGGER.error("s3_upload_failed", key=key, error=str(exc))
        raise
    LOGGER.info("uploaded_s3", bucket=settings.aws_s3_bucket, key=key)
    return key


def sanitize_object_key(key: str) -> str:
    """Strip quoting, URL escapes and duplicate slashes from a stored key."""

    if not key:
        return ""

    sanitized = str(key).strip().strip('"').strip("'")
    sanitized = urllib.parse.unquote(sanitized)
    sanitized = re.sub(r"/+", "/", sanitized)
    return sanitized.lstrip("/")


def generate_presigned_url(
    key: str,
    *,
    expires_in: int = 3600,
    download_name: str | None = None,
) -> str:
    """Return a time-limited download link (a ``file://`` URI in local mode)."""

    sanitized_key = sanitize_object_key(key)
    if is_local_mode():
        return (_local_bucket_root() / sanitized_key).resolve().as_uri()

    params: dict[str, str] = {"Bucket": get_settings().aws_s3_bucket, "Key": sanitized_key}
    if download_name:
        quoted = re.sub(r"[^A-Za-z0-9._-]+", "_", download_name)
        params["ResponseContentDisposition"] = f'attachment; filename="{quoted}"'

    return _client().generate_presigned_url(
        "get_object",
        Params=params,
        ExpiresIn=expires_in,
    )


__all__ = [
    "StorageError",
    "build_object_key",
    "determine_content_type",
    "generate_presigned_url",
    "is_local_mode",
    "safe_filename",
    "sanitize_object_key",
    "upload_bytes",
]
