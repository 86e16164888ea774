"""Resolve download requests to a file or a streamed directory archive."""

from __future__ import annotations

from ..errors import NotFound
from ..storage.archives import DirectoryArchive
from ..storage.files import FileStorage
from ..storage.models import DirectoryDownload, DownloadTarget, FileDownload


class DownloadResolver:
    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    def resolve(self, raw_path: str) -> DownloadTarget:
        """Return what should be sent for ``raw_path``.

        Raises ``PathTraversal`` for paths outside the root and ``NotFound``
        when nothing exists there.
        """
        target = self.storage.resolve_path(raw_path)
        if target.is_dir():
            archive = DirectoryArchive(target, compress_level=self.storage.config.compress_level)
            return DirectoryDownload(path=target, filename=f"{target.name}.zip", stream=iter(archive))
        if target.is_file():
            return FileDownload(path=target, filename=target.name)
        raise NotFound(f"Nothing stored at {raw_path!r}.")
