# tests/services/test_file_storage_service.py
import hashlib

import pytest

from serialtrack.core.exceptions import FileStorageException


def test_store_and_read(file_storage):
    stored = file_storage.store_file(b"invoice body", "INV-1.pdf")

    assert stored["original_filename"] == "INV-1.pdf"
    assert stored["content_type"] == "application/pdf"
    assert stored["size"] == 12
    assert stored["checksum"] == hashlib.sha256(b"invoice body").hexdigest()
    assert stored["filename"] == f"{stored['file_id']}.pdf"
    assert file_storage.read_file(stored["storage_path"], stored["checksum"]) == b"invoice body"


def test_store_file_like_object(file_storage, tmp_path):
    source = tmp_path / "scan.png"
    source.write_bytes(b"\x89PNG")
    with open(source, "rb") as f:
        stored = file_storage.store_file(f, "scan.png", "image/png")
    assert stored["content_type"] == "image/png"
    assert file_storage.read_file(stored["storage_path"]) == b"\x89PNG"


def test_delete(file_storage):
    stored = file_storage.store_file(b"data", "a.pdf")
    assert file_storage.delete_file(stored["storage_path"]) is True
    assert file_storage.delete_file(stored["storage_path"]) is False
    with pytest.raises(FileStorageException):
        file_storage.read_file(stored["storage_path"])
