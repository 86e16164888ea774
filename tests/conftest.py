from __future__ import annotations

import io
import struct
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from filedrop.storage.files import FileStorage
from filedrop.storage.models import StorageConfig


@pytest.fixture()
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture()
def storage(storage_root: Path) -> FileStorage:
    return FileStorage(StorageConfig(root=storage_root))


@pytest.fixture()
def make_zip() -> Callable[[dict[str, bytes]], bytes]:
    def _make_zip(entries: dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, content in entries.items():
                archive.writestr(name, content)
        return buffer.getvalue()

    return _make_zip


@pytest.fixture()
def make_corrupt_zip(make_zip) -> Callable[[str, bytes], bytes]:
    """Build a zip with intact headers whose member data is garbage."""

    def _make_corrupt_zip(name: str, content: bytes) -> bytes:
        payload = bytearray(make_zip({name: content}))
        with zipfile.ZipFile(io.BytesIO(bytes(payload))) as archive:
            info = archive.getinfo(name)
        offset = info.header_offset
        name_length, extra_length = struct.unpack("<HH", payload[offset + 26 : offset + 30])
        start = offset + 30 + name_length + extra_length
        payload[start : start + info.compress_size] = b"\xff" * info.compress_size
        return bytes(payload)

    return _make_corrupt_zip
