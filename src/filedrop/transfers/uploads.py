"""Dispatch uploaded items to archive expansion or plain storage."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from ..errors import ExtractionFailed, IOFailure, NoItems
from ..storage.archives import expand_archive
from ..storage.files import FileStorage
from ..storage.models import ArchiveUpload, PlainUpload, UploadItem, classify_upload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    accepted: int


class UploadCoordinator:
    """Store a batch of uploads, expanding ``*.zip`` items into directories.

    A failing item aborts the rest of the batch; items stored before it are
    kept.
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    def handle(self, items: Sequence[UploadItem]) -> UploadResult:
        if not items:
            raise NoItems("The request did not contain any files.")

        for item in items:
            kind = classify_upload(item.name)
            if isinstance(kind, ArchiveUpload):
                self._store_archive(kind, item.payload)
            else:
                self._store_plain(kind, item.payload)

        logger.info("Stored %d uploaded item(s)", len(items))
        return UploadResult(accepted=len(items))

    def _store_plain(self, upload: PlainUpload, payload: bytes) -> None:
        self.storage.write_bytes(upload.relative_path, payload)

    def _store_archive(self, upload: ArchiveUpload, payload: bytes) -> None:
        # Validate the destination before touching the disk.
        destination = self.storage.resolve_path(upload.destination_name)
        with self._staged_archive(payload) as archive_path:
            logger.info("Expanding %s into %s", upload.name, destination)
            try:
                written = expand_archive(archive_path, destination)
            except ExtractionFailed:
                logger.exception("Extraction of %s failed", upload.name)
                raise
            logger.info("Expanded %d file(s) from %s", written, upload.name)

    @contextmanager
    def _staged_archive(self, payload: bytes) -> Iterator[Path]:
        root = self.storage.ensure_root()
        staged = root / f"{self.storage.config.temp_prefix}{uuid.uuid4().hex}.zip"
        try:
            staged.write_bytes(payload)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise IOFailure(f"Cannot stage archive: {exc}") from exc
        try:
            yield staged
        finally:
            staged.unlink(missing_ok=True)
