"""Error kinds raised by the storage layer."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for failures surfaced to clients.

    ``kind`` is the machine-readable name, ``reason`` the short human-readable
    summary and the exception message carries the detail.
    """

    kind = "StorageError"
    reason = "Storage operation failed"
    status_code = 500

    def to_payload(self) -> dict[str, object]:
        return {
            "ok": False,
            "error": self.reason,
            "kind": self.kind,
            "details": str(self),
        }


class NoItems(StorageError):
    kind = "NoItems"
    reason = "No files uploaded"
    status_code = 400


class PathTraversal(StorageError, ValueError):
    kind = "PathTraversal"
    reason = "Invalid path"
    status_code = 400


class ExtractionFailed(StorageError):
    kind = "ExtractionFailed"
    reason = "Failed to extract zip file"
    status_code = 500


class IOFailure(StorageError):
    kind = "IOFailure"
    reason = "Storage I/O failed"
    status_code = 500


class NotFound(StorageError, FileNotFoundError):
    kind = "NotFound"
    reason = "Not found"
    status_code = 404
