"""
Local-disk storage for manuscript scans, thumbnails and researcher id proofs.

Files live under ``UPLOAD_DIR/<subdir>/<uuid>-<name>`` and are served by the
static mount at ``UPLOAD_URL_PREFIX``.
"""
import re
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from manuscript_portal.core.config import settings
from manuscript_portal.core.exceptions import (
    EmptyFileError,
    FileTooLargeError,
    InvalidFileTypeError,
    TooManyFilesError,
    ValidationError,
)
from manuscript_portal.core.logging_config import logger

CHUNK_SIZE = 64 * 1024

THUMBNAILS = "thumbnails"
PAGES = "pages"
ID_PROOFS = "id-proofs"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: Optional[str]) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-]"""
    name = Path((filename or "").replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).lstrip(".")
    return name[:100] or "file"


def file_extension(filename: Optional[str]) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


class UploadStorage:
    """Async file store rooted at a base directory"""

    def __init__(self, base_dir: Optional[str] = None, url_prefix: Optional[str] = None,
                 max_size: Optional[int] = None, allowed_extensions: Optional[Iterable[str]] = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).resolve()
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE
        self.allowed_extensions = [e.lower() for e in (allowed_extensions or settings.ALLOWED_EXTENSIONS)]

    def _target_dir(self, subdir: str) -> Path:
        target = (self.base_dir / subdir).resolve()
        if target != self.base_dir and self.base_dir not in target.parents:
            raise ValidationError("Invalid upload location", field="files")
        return target

    def path_for_url(self, url: str) -> Optional[Path]:
        """Map a public URL back to a path inside base_dir, or None"""
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        path = (self.base_dir / relative).resolve()
        if self.base_dir not in path.parents:
            return None
        return path

    def validate(self, upload: UploadFile) -> None:
        if file_extension(upload.filename) not in self.allowed_extensions:
            raise InvalidFileTypeError(upload.filename or "", self.allowed_extensions)

    async def save(self, upload: UploadFile, subdir: str) -> str:
        """Write one upload to disk and return its public URL"""
        self.validate(upload)

        target_dir = self._target_dir(subdir)
        target_dir.mkdir(parents=True, exist_ok=True)
        stored_name = f"{uuid.uuid4()}-{sanitize_filename(upload.filename)}"
        target = target_dir / stored_name

        written = 0
        try:
            async with aiofiles.open(target, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_size:
                        raise FileTooLargeError(upload.filename or stored_name, self.max_size)
                    await out.write(chunk)
            if written == 0:
                raise EmptyFileError(upload.filename or stored_name)
        except Exception:
            await self._remove(target)
            raise

        logger.debug(f"[Uploads] Stored {stored_name} ({written} bytes) in {subdir}")
        return f"{self.url_prefix}/{subdir}/{stored_name}"

    async def save_many(self, uploads: List[UploadFile], subdir: str, max_files: Optional[int] = None) -> List[str]:
        """Save all uploads or none of them"""
        uploads = [u for u in uploads if u is not None and u.filename]
        limit = max_files if max_files is not None else settings.MAX_FILES_PER_UPLOAD
        if len(uploads) > limit:
            raise TooManyFilesError(limit)

        for upload in uploads:
            self.validate(upload)

        urls: List[str] = []
        try:
            for upload in uploads:
                urls.append(await self.save(upload, subdir))
        except Exception:
            await self.delete_many(urls)
            raise
        return urls

    async def delete(self, url: Optional[str]) -> bool:
        """Best-effort removal. Returns True when a file was deleted."""
        path = self.path_for_url(url or "")
        if path is None:
            if url:
                logger.warning(f"[Uploads] Refusing to delete outside upload dir: {url}")
            return False
        return await self._remove(path)

    async def delete_many(self, urls: Iterable[Optional[str]]) -> int:
        deleted = 0
        for url in urls:
            if await self.delete(url):
                deleted += 1
        return deleted

    async def _remove(self, path: Path) -> bool:
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"[Uploads] Could not delete {path}: {e}")
            return False


upload_storage = UploadStorage()


def get_upload_storage() -> UploadStorage:
    """FastAPI dependency (overridable in tests)"""
    return upload_storage
