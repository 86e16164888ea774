"""Local file storage confined to a single root directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterator

from ..errors import IOFailure, PathTraversal
from .models import StorageConfig
from .paths import confine

logger = logging.getLogger(__name__)


class FileStorage:
    """Write, resolve and enumerate files under the configured storage root.

    The root is created on the first write, not on construction.
    """

    def __init__(self, config: StorageConfig) -> None:
        self.config = config
        self.base_dir = config.root

    def sanitize(self, raw_path: str) -> PurePosixPath:
        """Return the normalised root-relative form of ``raw_path``."""
        relative, _ = self._confine(raw_path)
        return relative

    def resolve_path(self, raw_path: str) -> Path:
        """Resolve a user-provided path under the storage root."""
        _, absolute = self._confine(raw_path)
        return absolute

    def _confine(self, raw_path: str) -> tuple[PurePosixPath, Path]:
        try:
            return confine(self.base_dir, raw_path)
        except PathTraversal:
            logger.warning("Rejected path outside storage root: %r", raw_path)
            raise

    def ensure_root(self) -> Path:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailure(f"Cannot create storage root {self.base_dir}: {exc}") from exc
        return self.base_dir

    def write_bytes(self, relative_path: str, payload: bytes) -> Path:
        """Write ``payload`` at ``relative_path``, replacing any existing file."""
        target = self.resolve_path(relative_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            raise IOFailure(f"Cannot write {relative_path!r}: {exc}") from exc
        return target

    def iter_files(self) -> Iterator[str]:
        """Yield root-relative POSIX paths of every regular file, depth first.

        Entries come in directory-read order; nothing is sorted. A missing
        root yields nothing.
        """
        if not self.base_dir.is_dir():
            return
        yield from self._walk(self.base_dir)

    def _walk(self, directory: Path) -> Iterator[str]:
        with os.scandir(directory) as entries:
            children = list(entries)
        for entry in children:
            if entry.is_dir(follow_symlinks=False):
                yield from self._walk(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                yield Path(entry.path).relative_to(self.base_dir).as_posix()

    def list_files(self) -> list[str]:
        return list(self.iter_files())
