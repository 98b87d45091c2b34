import asyncio
import base64
import binascii
import secrets
import string
import time
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from gallery.config import settings
from gallery.errors import (BadRequestError, BlobStoreError, GalleryError, InternalError,
                            NotFoundError, UnauthorizedError)
from gallery.models import ImageListResponse, ImageRecord, SkippedEntry, UploadEntry, UploadResponse
from gallery.services import BlobStore, MetadataStore

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["images"])

KEY_PREFIX = "image:"
JPEG_MEDIA_TYPES = ("image/jpeg", "image/jpg")
JPEG_SOI = b"\xff\xd8\xff"
SUFFIX_ALPHABET = string.digits + string.ascii_lowercase

bearer = HTTPBearer(auto_error=False)


# Dependency Injection for services
async def get_blob_store():
    return BlobStore()


async def get_metadata_store():
    return MetadataStore()


async def require_public_key(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)):
    if credentials is None or not secrets.compare_digest(credentials.credentials, settings.PUBLIC_KEY):
        raise UnauthorizedError("Missing or invalid authorization")


def decode_jpeg_data_url(data_url: str) -> bytes:
    """Raw bytes of a base64 data URL carrying a JPEG; ValueError otherwise."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    media_type = header[len("data:"):-len(";base64")].lower()
    if media_type not in JPEG_MEDIA_TYPES:
        raise ValueError(f"unsupported media type {media_type or 'unknown'}")
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e
    if not data.startswith(JPEG_SOI):
        raise ValueError("payload is not JPEG data")
    return data


def new_image_id() -> str:
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{suffix}.jpg"


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/images", response_model=UploadResponse, dependencies=[Depends(require_public_key)])
async def upload_images(
    payload: Any = Body(default=None),
    storage: BlobStore = Depends(get_blob_store),
    db: MetadataStore = Depends(get_metadata_store)
):
    entries = payload.get("images") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise BadRequestError("Images array is required")

    uploaded: list[ImageRecord] = []
    skipped: list[SkippedEntry] = []

    def skip(index: int, reason: str):
        logger.warning("upload_entry_skipped", index=index, reason=reason)
        skipped.append(SkippedEntry(index=index, reason=reason))

    try:
        for index, raw in enumerate(entries):
            try:
                entry = UploadEntry.model_validate(raw)
                data = decode_jpeg_data_url(entry.base64)
            except (ValidationError, ValueError) as e:
                skip(index, str(e))
                continue

            image_id = new_image_id()
            file_path = f"{entry.month_year}/{image_id}"

            try:
                await storage.upload(file_path, data)
            except BlobStoreError as e:
                skip(index, str(e))
                continue

            url = await storage.create_signed_url(file_path)
            record = ImageRecord(
                id=image_id,
                file_path=file_path,
                url=url or "",
                date=entry.date,
                month_year=entry.month_year,
            )

            # Metadata only after the blob is in place
            await db.set(f"{KEY_PREFIX}{image_id}", record.to_item())
            uploaded.append(record)
            logger.info("image_uploaded", id=image_id, file_path=file_path, size=len(data))
    except GalleryError:
        raise
    except Exception:
        logger.exception("upload_failed", uploaded=len(uploaded))
        raise InternalError("Failed to upload images")

    return UploadResponse(images=uploaded, skipped=skipped)


@router.get("/images", response_model=ImageListResponse, dependencies=[Depends(require_public_key)])
async def list_images(
    storage: BlobStore = Depends(get_blob_store),
    db: MetadataStore = Depends(get_metadata_store)
):
    async def refresh_url(record: ImageRecord) -> ImageRecord:
        # Refreshed URL goes out in the response only
        url = await storage.create_signed_url(record.file_path)
        if url:
            record.url = url
        return record

    try:
        records = []
        for value in await db.get_by_prefix(KEY_PREFIX):
            try:
                records.append(ImageRecord.model_validate(value))
            except ValidationError as e:
                logger.warning("stored_record_invalid", id=value.get("id") if isinstance(value, dict) else None,
                               errors=e.error_count())
        images = await asyncio.gather(*(refresh_url(record) for record in records))
    except Exception:
        logger.exception("list_failed")
        raise InternalError("Failed to fetch images")

    return ImageListResponse(images=list(images))


@router.delete("/images/{image_id}", dependencies=[Depends(require_public_key)])
async def delete_image(
    image_id: str,
    db: MetadataStore = Depends(get_metadata_store),
    storage: BlobStore = Depends(get_blob_store)
):
    key = f"{KEY_PREFIX}{image_id}"
    try:
        value = await db.get(key)
        if not value:
            raise NotFoundError("Image not found")
        record = ImageRecord.model_validate(value)

        await storage.remove(record.file_path)
        await db.delete(key)
    except GalleryError:
        raise
    except Exception:
        logger.exception("delete_failed", id=image_id)
        raise InternalError("Failed to delete image")

    logger.info("image_deleted", id=image_id, file_path=record.file_path)
    return {"success": True}
