"""
File Storage

Persists uploaded bytes under UPLOAD_DIR and returns a retrievable path.

Uploads are validated against a MIME allow-list and a size ceiling before
anything touches the disk. Stored files get a generated UUID name; the
client-supplied name is kept only as metadata.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from school_erp.core.config import settings
from school_erp.core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_MB = 1024 * 1024

DOCUMENT_MIME_TYPES: dict[str, str] = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-powerpoint": ".ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "text/plain": ".txt",
}

EVIDENCE_MIME_TYPES: dict[str, str] = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


@dataclass
class StoredFile:
    original_name: str
    stored_name: str
    file_path: str
    mime_type: str
    size: int


def upload_root() -> Path:
    return Path(settings.upload_dir).resolve()


async def save_upload(
    upload: UploadFile,
    *,
    subdir: str,
    allowed_types: dict[str, str],
    max_mb: int,
) -> StoredFile:
    """
    Validate and persist an uploaded file.

    Args:
        upload: Multipart upload
        subdir: Directory under UPLOAD_DIR (e.g. "documents")
        allowed_types: MIME type -> file extension allow-list
        max_mb: Size ceiling in megabytes

    Returns:
        StoredFile metadata; `file_path` is relative to UPLOAD_DIR

    Raises:
        ValidationError: Missing file, disallowed type or too large
    """
    if not upload.filename:
        raise ValidationError("No file provided.")

    mime_type = (upload.content_type or "").split(";")[0].strip().lower()
    if mime_type not in allowed_types:
        raise ValidationError(f"File type '{mime_type or 'unknown'}' is not allowed.")

    max_bytes = max_mb * _MB
    too_large = ValidationError(f"File exceeds the maximum size of {max_mb}MB.")

    # Reject on the declared size first, then on the bytes actually received
    if upload.size is not None and upload.size > max_bytes:
        raise too_large
    content = await upload.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise too_large

    stored_name = f"{uuid.uuid4()}{allowed_types[mime_type]}"
    directory = upload_root() / subdir
    await aiofiles.os.makedirs(directory, exist_ok=True)

    async with aiofiles.open(directory / stored_name, "wb") as f:
        await f.write(content)

    logger.info(f"Stored upload {upload.filename!r} as {subdir}/{stored_name} ({len(content)} bytes)")
    return StoredFile(
        original_name=upload.filename,
        stored_name=stored_name,
        file_path=f"{subdir}/{stored_name}",
        mime_type=mime_type,
        size=len(content),
    )


def resolve_path(file_path: str) -> Path:
    """
    Resolve a stored relative path to an absolute path under UPLOAD_DIR.

    Raises:
        NotFoundError: Path escapes UPLOAD_DIR or the file is missing
    """
    root = upload_root()
    path = (root / file_path).resolve()
    if not path.is_relative_to(root) or not path.is_file():
        raise NotFoundError("File")
    return path


async def delete_file(file_path: str) -> None:
    """Remove a stored file, ignoring files that are already gone."""
    try:
        await aiofiles.os.remove(resolve_path(file_path))
    except (NotFoundError, FileNotFoundError):
        logger.debug(f"Stored file already removed: {file_path}")
