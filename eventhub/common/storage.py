"""Payment proof storage: local disk or Backblaze B2 (S3-compatible API)."""

import uuid
import logging
from pathlib import Path
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from eventhub.common.config import get_settings
from eventhub.common.errors import Reason, ServiceError, ValidationFailed

settings = get_settings()
logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"


@lru_cache
def get_s3_client():
    """Get or create S3 client for Backblaze B2."""
    if not settings.b2_key_id or not settings.b2_application_key:
        raise ValueError("B2 credentials not configured. Set B2_KEY_ID and B2_APPLICATION_KEY in environment.")

    return boto3.client(
        's3',
        endpoint_url=settings.b2_endpoint,
        aws_access_key_id=settings.b2_key_id,
        aws_secret_access_key=settings.b2_application_key,
        region_name=settings.b2_region,
    )


def _validate_upload(file: UploadFile) -> None:
    """Only reasonably sized images are accepted as payment proof."""
    if not file.filename:
        raise ValidationFailed(Reason.PAYMENT_PROOF_REQUIRED, "Payment proof is required")

    suffix = Path(file.filename).suffix.lower()
    content_type = (file.content_type or "").lower()
    if suffix not in settings.allowed_upload_extensions or not content_type.startswith("image/"):
        raise ValidationFailed(
            Reason.INVALID_INPUT,
            f"Only image files are allowed. Received: {suffix or 'unknown'} ({content_type or 'unknown'})",
        )

    file.file.seek(0, 2)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size > settings.max_upload_size_mb * 1024 * 1024:
        raise ValidationFailed(
            Reason.INVALID_INPUT,
            f"File too large. Maximum size: {settings.max_upload_size_mb}MB",
        )


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_upload_file(file: UploadFile, subdir: str = "payment-proofs") -> str:
    """
    Store an uploaded file and return its opaque reference.

    Local storage returns a ``/uploads/...`` path served by the app; B2 returns
    the object key.

    Raises:
        ValidationFailed: If the file is not an acceptable image
        ServiceError: If the backend rejects the write
    """
    _validate_upload(file)

    suffix = Path(file.filename or "").suffix.lower()
    filename = f"payment-{uuid.uuid4().hex}{suffix}"

    try:
        file.file.seek(0)
        content = file.file.read()

        if settings.storage_backend == "b2":
            object_key = f"{settings.b2_key_prefix}{subdir}/{filename}"
            get_s3_client().put_object(
                Bucket=settings.b2_bucket_name,
                Key=object_key,
                Body=content,
                ContentType=file.content_type or 'application/octet-stream',
            )
            logger.info(f"Uploaded payment proof to B2: {object_key}")
            return object_key

        dest_dir = ensure_dir(Path(settings.upload_dir) / subdir)
        (dest_dir / filename).write_bytes(content)
        logger.info(f"Stored payment proof locally: {subdir}/{filename}")
        return f"{LOCAL_URL_PREFIX}/{subdir}/{filename}"

    except (ClientError, BotoCoreError, OSError, ValueError) as e:
        logger.error(f"Failed to store uploaded file: {e}")
        raise ServiceError(Reason.INVALID_INPUT, "Failed to save file", status_code=500) from e
    finally:
        file.file.close()


def delete_file(reference: str) -> bool:
    """Remove a stored file; used to clean up proofs of purchases that were rejected up front."""
    try:
        if reference.startswith(LOCAL_URL_PREFIX + "/"):
            path = Path(settings.upload_dir) / reference[len(LOCAL_URL_PREFIX) + 1:]
            path.unlink(missing_ok=True)
        else:
            get_s3_client().delete_object(Bucket=settings.b2_bucket_name, Key=reference)
        logger.info(f"Deleted stored file: {reference}")
        return True
    except (ClientError, BotoCoreError, OSError, ValueError) as e:
        logger.error(f"Failed to delete stored file {reference}: {e}")
        return False


def get_file_url(reference: str, expires_in: int = 3600) -> str:
    """Resolve a stored reference to a URL the organizer's browser can open."""
    if reference.startswith(LOCAL_URL_PREFIX + "/"):
        return reference
    try:
        return get_s3_client().generate_presigned_url(
            'get_object',
            Params={
                'Bucket': settings.b2_bucket_name,
                'Key': reference,
            },
            ExpiresIn=expires_in,
        )
    except (ClientError, BotoCoreError, ValueError) as e:
        logger.error(f"Failed to generate presigned URL: {e}")
        raise ServiceError(Reason.INVALID_INPUT, "Failed to generate file access URL", status_code=500) from e
