import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Optional

import aiofiles

from hackhub.errors import UploadError
from hackhub.settings import settings

logger = logging.getLogger(__name__)

upload_semaphore = asyncio.Semaphore(5)

ALLOWED_EXTENSIONS = {'.zip', '.pdf', '.png', '.jpg', '.jpeg', '.txt', '.md', '.mp4', '.pptx'}


@dataclass
class StoredFile:
    url: str
    type: Optional[str]
    size: int
    path: Optional[str] = None


class LocalStorage:
    """Stores uploaded artifacts on the local disk under ``settings.upload_dir``"""

    def __init__(self, base_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        self.base_dir = base_dir or settings.upload_dir
        self.max_file_size = max_file_size or settings.max_upload_size

    async def upload(self, upload_file, folder: str, public: bool = False) -> StoredFile:
        """Save an uploaded file in chunks and return its location"""
        async with upload_semaphore:
            file_extension = os.path.splitext(upload_file.filename or "")[1].lower()
            if file_extension not in ALLOWED_EXTENSIONS:
                raise UploadError(f"Unsupported file format: {file_extension or 'unknown'}")

            visibility = "public" if public else "private"
            upload_dir = os.path.join(self.base_dir, visibility, folder)
            os.makedirs(upload_dir, exist_ok=True)

            file_name = f"{uuid.uuid4()}{file_extension}"
            file_path = os.path.join(upload_dir, file_name)
            temp_path = f"{file_path}.part"

            file_size = 0
            chunk_size = 64 * 1024
            try:
                async with aiofiles.open(temp_path, 'wb') as out_file:
                    while chunk := await upload_file.read(chunk_size):
                        file_size += len(chunk)
                        if file_size > self.max_file_size:
                            raise UploadError(
                                f"File size must not exceed {self.max_file_size / (1024 * 1024):.0f}MB",
                                too_large=True
                            )
                        await out_file.write(chunk)
                os.replace(temp_path, file_path)
            except UploadError:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
            except OSError as e:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                logger.exception("Failed to store upload %s", upload_file.filename)
                raise UploadError(f"Failed to store file: {e}") from e

            url = "/" + "/".join([self.base_dir.strip("/"), visibility, folder, file_name])
            return StoredFile(
                url=url,
                type=getattr(upload_file, "content_type", None),
                size=file_size,
                path=file_path
            )

    def delete(self, stored_file: StoredFile) -> bool:
        """Remove a stored file, returns False if it was already gone"""
        if not stored_file.path or not os.path.exists(stored_file.path):
            return False
        try:
            os.unlink(stored_file.path)
        except OSError:
            logger.exception("Failed to delete stored file %s", stored_file.url)
            return False
        return True


storage = LocalStorage()


def get_storage() -> LocalStorage:
    """Storage dependency, overridden in tests"""
    return storage
