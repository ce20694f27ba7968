"""
Upload Service - stores course media and student files on local disk.

Files land in UPLOAD_DIR/<folder>/<random name>.<ext> and are served by the
/uploads static mount.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional
import uuid

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from nanoflows.core.config import settings
from nanoflows.core.exceptions import FileTooLargeError, InvalidFileTypeError, StorageError, ValidationError
from nanoflows.core.logging_config import logger

CHUNK_SIZE = 1024 * 1024  # 1 MB


@dataclass(frozen=True)
class UploadKind:
    folder: str
    extension_groups: tuple

    @property
    def allowed_extensions(self) -> List[str]:
        allowed: List[str] = []
        for group in self.extension_groups:
            allowed.extend(getattr(settings, group))
        return allowed


UPLOAD_KINDS: Dict[str, UploadKind] = {
    "image": UploadKind("images", ("IMAGE_EXTENSIONS",)),
    "video": UploadKind("videos", ("VIDEO_EXTENSIONS",)),
    "thumbnail": UploadKind("thumbnails", ("IMAGE_EXTENSIONS",)),
    "resource": UploadKind("resources", ("DOCUMENT_EXTENSIONS", "IMAGE_EXTENSIONS")),
    "student-file": UploadKind("submissions", ("DOCUMENT_EXTENSIONS", "IMAGE_EXTENSIONS")),
}


def file_extension(filename: str) -> str:
    return filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''


class UploadService:

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size

    @property
    def limit(self) -> int:
        return self.max_size or settings.MAX_UPLOAD_SIZE

    async def save(self, file: UploadFile, kind: str) -> Dict[str, object]:
        """
        Validate and store an upload.

        Returns {"url", "filename", "size"}. Raises InvalidFileTypeError for a
        disallowed extension and FileTooLargeError past MAX_UPLOAD_SIZE.
        """
        upload_kind = UPLOAD_KINDS[kind]

        if not file.filename:
            raise ValidationError("No file uploaded", field="file")

        extension = file_extension(file.filename)
        allowed = upload_kind.allowed_extensions
        if extension not in allowed:
            raise InvalidFileTypeError(extension or file.filename, allowed)

        target_dir: Path = settings.UPLOAD_DIR / upload_kind.folder
        target_dir.mkdir(parents=True, exist_ok=True)
        stored_name = f"{uuid.uuid4().hex}.{extension}"
        target = target_dir / stored_name

        size = 0
        try:
            async with aiofiles.open(target, "wb") as out:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.limit:
                        raise FileTooLargeError(size, self.limit)
                    await out.write(chunk)
        except FileTooLargeError:
            await aiofiles.os.remove(target)
            logger.warning(f"[Upload] Rejected {file.filename}: larger than {self.limit} bytes")
            raise
        except OSError as e:
            logger.error(f"[Upload] Could not write {target}: {e}")
            raise StorageError(f"Could not store {file.filename}") from e

        logger.info(f"[Upload] Stored {kind} {file.filename} as {upload_kind.folder}/{stored_name} ({size} bytes)")

        return {
            "url": f"/uploads/{upload_kind.folder}/{stored_name}",
            "filename": stored_name,
            "originalName": file.filename,
            "size": size,
        }


upload_service = UploadService()
