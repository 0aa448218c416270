"""
Media uploads (question images, recorded audio, evaluation metadata) to S3.
"""
import os
import shutil
import time
import uuid
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from kanasu.core.config import settings
from kanasu.core.exceptions import ExternalServiceError, ValidationError
from kanasu.core.logging_config import get_logger, log_external_api_call

logger = get_logger(__name__)

MEDIA_KINDS = ("audio", "image", "metadata")

_s3_client = None


def get_s3_client():
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
    return _s3_client


def build_object_url(key: str) -> str:
    return f"https://{settings.AWS_S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"


def save_upload_to_temp(upload: UploadFile) -> str:
    """Copy a multipart upload into UPLOAD_DIR and return the local path."""
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    _, ext = os.path.splitext(upload.filename or "")
    path = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4()}{ext}")
    with open(path, "wb") as handle:
        shutil.copyfileobj(upload.file, handle)
    return path


def upload_media(file_path: str, kind: str, content_type: Optional[str] = None) -> str:
    """
    Upload a local file under ``evaluations/<kind>/`` and return its URL.

    The local file is removed whether or not the upload succeeds.
    """
    try:
        if kind not in MEDIA_KINDS:
            raise ValidationError(f"Unsupported media kind '{kind}'")
        if not settings.AWS_S3_BUCKET:
            raise ExternalServiceError("Media storage is not configured")

        _, ext = os.path.splitext(file_path)
        key = f"evaluations/{kind}/{uuid.uuid4()}{ext}"
        extra_args = {"ContentType": content_type} if content_type else None

        started = time.time()
        try:
            get_s3_client().upload_file(file_path, settings.AWS_S3_BUCKET, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError) as e:
            log_external_api_call(
                "s3", key, "PUT", 500, (time.time() - started) * 1000, success=False, error=str(e)
            )
            raise ExternalServiceError(f"Failed to upload {kind} file", original_exception=e) from e

        log_external_api_call("s3", key, "PUT", 200, (time.time() - started) * 1000)
        return build_object_url(key)
    finally:
        if os.path.exists(file_path):
            os.remove(file_path)


def store_upload(upload: Optional[UploadFile], kind: str) -> Optional[str]:
    """Persist an optional multipart file and return its URL, or None when absent."""
    if upload is None or not upload.filename:
        return None
    path = save_upload_to_temp(upload)
    logger.debug(f"Uploading {kind} file {upload.filename}")
    return upload_media(path, kind, upload.content_type)


def delete_media(url: str) -> None:
    """Remove a stored object by its URL. A failed delete is logged and otherwise ignored."""
    prefix = build_object_url("")
    if not url.startswith(prefix):
        logger.warning(f"Not a media storage URL, nothing removed: {url}")
        return

    key = url[len(prefix):]
    started = time.time()
    try:
        get_s3_client().delete_object(Bucket=settings.AWS_S3_BUCKET, Key=key)
    except (BotoCoreError, ClientError) as e:
        log_external_api_call(
            "s3", key, "DELETE", 500, (time.time() - started) * 1000, success=False, error=str(e)
        )
        logger.error(f"Could not remove orphaned object {key}: {e}")
        return

    log_external_api_call("s3", key, "DELETE", 204, (time.time() - started) * 1000)


def store_uploads(uploads: Dict[str, Optional[UploadFile]]) -> Dict[str, Optional[str]]:
    """
    Store several uploads keyed by media kind, as a unit.

    When one upload fails, the objects already stored for this call are
    deleted before the error propagates.
    """
    urls: Dict[str, Optional[str]] = {}
    try:
        for kind, upload in uploads.items():
            urls[kind] = store_upload(upload, kind)
    except ExternalServiceError:
        for url in urls.values():
            if url:
                delete_media(url)
        raise
    return urls
