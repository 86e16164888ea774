"""Zip archive expansion and streaming archive construction."""

from __future__ import annotations

import logging
import os
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Iterator

from ..errors import ExtractionFailed, PathTraversal
from .paths import confine

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


def expand_archive(archive_path: Path, destination: Path) -> int:
    """Extract every entry of ``archive_path`` into ``destination``.

    Entry names are checked before anything is written, so an archive with a
    single escaping entry writes nothing. Entries already written before an
    I/O error are left in place. Returns the number of files written.
    """
    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()
            targets = [(member, _entry_target(destination, member.filename)) for member in members]
            destination.mkdir(parents=True, exist_ok=True)
            written = 0
            for member, target in targets:
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as source, target.open("wb") as sink:
                    shutil.copyfileobj(source, sink, COPY_CHUNK_SIZE)
                written += 1
    except PathTraversal as exc:
        raise ExtractionFailed(f"Archive {archive_path.name} contains an unsafe entry: {exc}") from exc
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError, RuntimeError) as exc:
        raise ExtractionFailed(f"Archive {archive_path.name} could not be extracted: {exc}") from exc
    return written


def _entry_target(destination: Path, entry_name: str) -> Path:
    _, target = confine(destination, entry_name)
    return target


class _ChunkSink:
    """Write-only, non-seekable buffer drained between archive entries."""

    def __init__(self) -> None:
        self._chunks: list[bytes] = []

    def write(self, data: bytes) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


class DirectoryArchive:
    """Stream a directory tree as a zip archive, one entry at a time.

    Iterating yields compressed bytes as entries are added and ends with the
    central directory. Entry names start with the directory's own name.
    """

    def __init__(self, source_dir: Path, *, compress_level: int = 9) -> None:
        self.source_dir = Path(source_dir)
        self.root_name = self.source_dir.name
        self.compress_level = compress_level
        self._sink = _ChunkSink()
        self._archive = zipfile.ZipFile(
            self._sink,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compress_level,
        )
        self._started = False
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __iter__(self) -> Iterator[bytes]:
        if self._started:
            raise RuntimeError("Archive stream can only be consumed once")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[bytes]:
        logger.info("Streaming archive of %s", self.source_dir)
        try:
            for path, arcname in self._entries():
                if path.is_dir():
                    self._archive.write(path, arcname)
                    chunk = self._sink.drain()
                    if chunk:
                        yield chunk
                else:
                    yield from self._write_file(path, arcname)
            yield self.finalize()
        except GeneratorExit:
            if not self.finalized:
                logger.info("Archive stream of %s closed before completion", self.source_dir)
            return
        logger.info("Archive of %s complete", self.source_dir)

    def _write_file(self, path: Path, arcname: str) -> Iterator[bytes]:
        info = zipfile.ZipInfo.from_file(path, arcname)
        info.compress_type = zipfile.ZIP_DEFLATED
        # ZipFile.open() does not apply the archive's level to a given ZipInfo.
        info._compresslevel = self.compress_level
        with path.open("rb") as source, self._archive.open(info, "w") as target:
            while True:
                block = source.read(COPY_CHUNK_SIZE)
                if not block:
                    break
                target.write(block)
                chunk = self._sink.drain()
                if chunk:
                    yield chunk
        chunk = self._sink.drain()
        if chunk:
            yield chunk

    def _entries(self) -> Iterator[tuple[Path, str]]:
        # Directories come before their contents; symlinks are skipped.
        yield self.source_dir, self.root_name
        for current, dirnames, filenames in os.walk(self.source_dir):
            base = Path(current)
            for name in dirnames:
                path = base / name
                if not path.is_symlink():
                    yield path, self._arcname(path)
            for name in filenames:
                path = base / name
                if path.is_file() and not path.is_symlink():
                    yield path, self._arcname(path)

    def _arcname(self, path: Path) -> str:
        return f"{self.root_name}/{path.relative_to(self.source_dir).as_posix()}"

    def finalize(self) -> bytes:
        """Write the central directory and return the remaining bytes."""
        if self._finalized:
            raise RuntimeError("Archive already finalized")
        self._finalized = True
        self._archive.close()
        return self._sink.drain()
