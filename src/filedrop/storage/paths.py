"""Confinement of client-supplied paths to a base directory."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path, PurePosixPath

from ..errors import PathTraversal


def normalise_relative(raw_path: str) -> PurePosixPath:
    """Turn a client-supplied path into a normalised relative path.

    Backslashes count as separators and leading separators are dropped.
    The result may still start with ``..``; callers must confine it.
    """
    cleaned = raw_path.replace("\\", "/").lstrip("/")
    return PurePosixPath(posixpath.normpath(cleaned)) if cleaned else PurePosixPath(".")


def confine(base_dir: Path, raw_path: str) -> tuple[PurePosixPath, Path]:
    """Resolve ``raw_path`` under ``base_dir`` or raise ``PathTraversal``.

    Returns the normalised relative path and its absolute location. The
    check is a string prefix check on absolute paths; symlinks are not
    followed. Only strict descendants of ``base_dir`` are accepted.
    """
    relative = normalise_relative(raw_path)
    base = os.path.abspath(base_dir)
    candidate = os.path.abspath(os.path.join(base, str(relative)))
    if not candidate.startswith(base.rstrip(os.sep) + os.sep):
        raise PathTraversal(f"Path {raw_path!r} must reside under the storage directory.")
    return relative, Path(candidate)
