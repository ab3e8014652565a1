"""Media storage on S3 or a local directory."""

from __future__ import annotations

import mimetypes
import re
from datetime import date
from io import BytesIO
from pathlib import Path
from uuid import uuid4

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
import structlog

from transforme.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
LOCAL_MEDIA_ROUTE = "/api/media"


def local_bucket_root() -> Path:
    settings = get_settings()
    root = Path(settings.local_storage_path)
    root.mkdir(parents=True, exist_ok=True)
    return root


def is_local_mode() -> bool:
    return get_settings().aws_s3_bucket.lower() == "local"


def _client() -> BaseClient:
    settings = get_settings()
    client_kwargs: dict[str, object] = {
        "config": Config(
            signature_version="s3v4",
            s3={"addressing_style": "virtual"},
        ),
        "region_name": settings.aws_region,
    }
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key

    return boto3.client("s3", **client_kwargs)


def _safe_filename(filename: str) -> str:
    safe_name = re.sub(r"[^A-Za-z0-9._-]+", "_", filename).strip("_")
    return safe_name or "upload"


def build_object_key(filename: str, *, folder: str, reference_date: date | None = None) -> str:
    """Return ``{folder}/{YYYY}/{MM}/{uuid}-{filename}``."""

    reference_date = reference_date or date.today()
    return (
        f"{folder}/{reference_date.year:04d}/{reference_date.month:02d}/"
        f"{uuid4().hex}-{_safe_filename(filename)}"
    )


def _determine_content_type(filename: str, content_type: str | None = None) -> str:
    """Infer a best-effort content type for uploads."""
    return (
        content_type
        or mimetypes.guess_type(filename)[0]
        or "application/octet-stream"
    )


def public_url(key: str) -> str:
    """Return the URL under which ``key`` is served."""

    settings = get_settings()
    if settings.public_media_base_url:
        return f"{settings.public_media_base_url.rstrip('/')}/{key}"
    if is_local_mode():
        return f"{settings.api_base_url.rstrip('/')}{LOCAL_MEDIA_ROUTE}/{key}"
    return f"https://{settings.aws_s3_bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"


def upload_bytes(
    data: bytes,
    *,
    filename: str,
    folder: str = "class-logs",
    content_type: str | None = None,
) -> str:
    """Upload in-memory data to storage and return the object key."""
    settings = get_settings()
    object_key = build_object_key(filename, folder=folder)
    resolved_content_type = _determine_content_type(filename, content_type)

    if is_local_mode():
        destination = local_bucket_root() / object_key
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        LOGGER.info("stored_local", key=object_key, path=str(destination))
        return object_key

    try:
        client = _client()
        client.upload_fileobj(
            Fileobj=BytesIO(data),
            Bucket=settings.aws_s3_bucket,
            Key=object_key,
            ExtraArgs={"ContentType": resolved_content_type},
        )
        LOGGER.info("uploaded_s3", bucket=settings.aws_s3_bucket, key=object_key)
        return object_key
    except (BotoCoreError, ClientError, NoCredentialsError) as exc:
        LOGGER.error("s3_upload_failed", key=object_key, error=str(exc))
        raise


__all__ = [
    "ALLOWED_IMAGE_TYPES",
    "LOCAL_MEDIA_ROUTE",
    "MAX_UPLOAD_BYTES",
    "build_object_key",
    "is_local_mode",
    "local_bucket_root",
    "public_url",
    "upload_bytes",
]
