# File: serialtrack/services/file_storage_service.py

import hashlib
import logging
import mimetypes
import os
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Union

from serialtrack.core.exceptions import FileStorageException

logger = logging.getLogger(__name__)


class FileStorageService:
    """
    Local-disk storage for uploaded order documents.

    Files are written under ``base_path`` in a two-level directory fan-out
    derived from the file id. Metadata persistence is the caller's concern;
    this class only returns the values to record.
    """

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        os.makedirs(self.base_path, exist_ok=True)

    def store_file(
        self,
        file_data: Union[bytes, BinaryIO],
        filename: str,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Write a file to disk.

        Args:
            file_data: Binary content or file-like object
            filename: Original filename
            content_type: MIME type (guessed from the filename if omitted)

        Returns:
            Dict with file_id, filename, original_filename, content_type,
            size, checksum and storage_path (relative to ``base_path``)

        Raises:
            FileStorageException: If the file cannot be written
        """
        if hasattr(file_data, "read"):
            file_data = file_data.read()

        file_id = str(uuid.uuid4())

        if not content_type or content_type == "application/octet-stream":
            guessed, _ = mimetypes.guess_type(filename)
            content_type = guessed or content_type or "application/octet-stream"

        extension = Path(filename).suffix or mimetypes.guess_extension(content_type) or ".bin"
        storage_path = self._get_storage_path(file_id, extension)

        try:
            os.makedirs(storage_path.parent, exist_ok=True)
            with open(storage_path, "wb") as f:
                f.write(file_data)
        except OSError as e:
            logger.error(f"Failed to store file {filename}: {e}", exc_info=True)
            raise FileStorageException(
                f"Failed to store file: {e}", file_path=str(storage_path), operation="store"
            ) from e

        logger.info(f"Stored file {filename} as {file_id} ({len(file_data)} bytes)")
        return {
            "file_id": file_id,
            "filename": storage_path.name,
            "original_filename": filename,
            "content_type": content_type,
            "size": len(file_data),
            "checksum": hashlib.sha256(file_data).hexdigest(),
            "storage_path": str(storage_path.relative_to(self.base_path)),
        }

    def read_file(self, storage_path: str, checksum: Optional[str] = None) -> bytes:
        """
        Read a stored file, warning when the checksum no longer matches.

        Raises:
            FileStorageException: If the file is missing or unreadable
        """
        path = self.base_path / storage_path
        if not path.exists():
            raise FileStorageException(f"File not found at {storage_path}", file_path=storage_path, operation="read")
        with open(path, "rb") as f:
            data = f.read()
        if checksum and hashlib.sha256(data).hexdigest() != checksum:
            logger.warning(f"File integrity check failed for {storage_path}")
        return data

    def delete_file(self, storage_path: str) -> bool:
        """
        Remove a stored file.

        Returns:
            True if a file was removed, False if it was already gone
        """
        path = self.base_path / storage_path
        if not path.exists():
            logger.warning(f"File {storage_path} already missing from storage")
            return False
        try:
            os.remove(path)
        except OSError as e:
            raise FileStorageException(
                f"Failed to delete file: {e}", file_path=storage_path, operation="delete"
            ) from e
        return True

    def _get_storage_path(self, file_id: str, extension: str) -> Path:
        if not extension.startswith("."):
            extension = f".{extension}"
        dir1, dir2 = file_id[:2], file_id[2:4]
        return self.base_path / dir1 / dir2 / f"{file_id}{extension}"
