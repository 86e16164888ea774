"""Value types shared by the storage components."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, Union

from pydantic import BaseModel, Field

ARCHIVE_SUFFIX = ".zip"


class StorageConfig(BaseModel):
    """Location and tuning of the storage root handed to every component."""

    root: Path = Field(description="Directory that contains every stored file.")
    compress_level: int = Field(default=9, ge=0, le=9, description="Deflate level for built archives.")
    temp_prefix: str = Field(default="temp-", description="Name prefix of staged upload archives.")


@dataclass(frozen=True)
class UploadItem:
    """A single named payload received from a client."""

    name: str
    payload: bytes


@dataclass(frozen=True)
class ArchiveUpload:
    """Upload to expand into ``<root>/<destination_name>``."""

    name: str
    destination_name: str


@dataclass(frozen=True)
class PlainUpload:
    """Upload to store verbatim at the client-declared path."""

    relative_path: str


UploadKind = Union[ArchiveUpload, PlainUpload]


def classify_upload(name: str) -> UploadKind:
    """Decide how an upload is stored from its name alone.

    Any name ending in ``.zip`` (case-insensitive) is expanded as an archive,
    even if the payload is not actually a zip file.
    """
    if name.lower().endswith(ARCHIVE_SUFFIX):
        base_name = PurePosixPath(name.replace("\\", "/")).name
        return ArchiveUpload(name=name, destination_name=base_name[: -len(ARCHIVE_SUFFIX)])
    return PlainUpload(relative_path=name)


@dataclass(frozen=True)
class FileDownload:
    path: Path
    filename: str


@dataclass
class DirectoryDownload:
    path: Path
    filename: str
    stream: Iterator[bytes]


DownloadTarget = Union[FileDownload, DirectoryDownload]
