# orderflow/utils/uploads.py

"""
Receipt photo storage on the local filesystem.
Files are validated (extension, MIME type, size) while they are written and
get a generated name, so a client never chooses the path.
"""

import os
import uuid
from typing import Optional

import aiofiles
from fastapi import HTTPException, UploadFile, status

from orderflow.config import settings

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".pdf"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "application/pdf"}
CHUNK_SIZE = 64 * 1024


def upload_dir() -> str:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    return settings.UPLOAD_DIR


def check_upload(file: UploadFile) -> str:
    """Returns the lower-cased extension, 400 when the file type is not allowed."""
    extension = os.path.splitext(file.filename or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS or (file.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image (JPEG, PNG, GIF) or PDF files are allowed",
        )
    return extension


async def save_upload(file: UploadFile, prefix: str = "receipt") -> str:
    """
    Streams the upload to UPLOAD_DIR and returns the stored file name.
    A file over UPLOAD_MAX_BYTES is removed again and rejected with 400.
    """
    extension = check_upload(file)
    filename = f"{prefix}-{uuid.uuid4().hex}{extension}"
    path = os.path.join(upload_dir(), filename)

    size = 0
    async with aiofiles.open(path, mode="wb") as out:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > settings.UPLOAD_MAX_BYTES:
                break
            await out.write(chunk)

    if size > settings.UPLOAD_MAX_BYTES:
        remove_upload(filename)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File is larger than {settings.UPLOAD_MAX_BYTES} bytes",
        )
    if size == 0:
        remove_upload(filename)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    return filename


def resolve_upload(filename: str) -> Optional[str]:
    """Absolute path of a stored file, None when missing or outside UPLOAD_DIR."""
    base = os.path.abspath(upload_dir())
    path = os.path.abspath(os.path.join(base, filename))
    if os.path.dirname(path) != base or not os.path.isfile(path):
        return None
    return path


def remove_upload(filename: str) -> None:
    path = resolve_upload(filename)
    if path is not None:
        os.remove(path)
