"""Photo upload endpoint."""

from __future__ import annotations

import structlog
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from transforme.core.rate_limit import enforce_rate_limit
from transforme.core.security import require_permission
from transforme.models import User
from transforme.schemas.class_log import PhotoGps
from transforme.schemas.upload import UploadOut
from transforme.services.exif import extract_photo_metadata
from transforme.services.storage import (
    ALLOWED_IMAGE_TYPES,
    MAX_UPLOAD_BYTES,
    public_url,
    upload_bytes,
)

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/uploads", tags=["uploads"])


@router.post("", response_model=UploadOut)
async def create_upload(
    file: UploadFile,
    user: User = Depends(require_permission("media:upload")),
) -> UploadOut:
    """Store an image and return its URL with any EXIF location/time hints."""

    enforce_rate_limit("upload", user.id, "Too many uploads. Please try again later.")

    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JPEG, PNG and WebP images are allowed",
        )

    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File exceeds the 10 MB limit",
        )

    metadata = await run_in_threadpool(extract_photo_metadata, data)
    filename = file.filename or "photo"
    try:
        key = await run_in_threadpool(
            upload_bytes, data, filename=filename, content_type=content_type
        )
    except (BotoCoreError, ClientError, NoCredentialsError) as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Upload failed. Please try again later.",
        ) from exc

    LOGGER.info(
        "photo_uploaded",
        user_id=user.id,
        key=key,
        size=len(data),
        has_gps=metadata.latitude is not None,
        has_date=metadata.date_taken is not None,
    )
    gps = metadata.gps
    return UploadOut(
        url=public_url(key),
        key=key,
        content_type=content_type,
        size=len(data),
        photo_gps=PhotoGps(**gps) if gps else None,
        exif_date_taken=metadata.date_taken,
    )
