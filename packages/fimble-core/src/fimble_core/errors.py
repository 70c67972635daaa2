"""Error taxonomy for scanning, manifest building and verification."""

from __future__ import annotations

import os


class FimbleError(Exception):
    """Base class for every error raised by fimble_core."""


class ScanIOError(FimbleError):
    """An I/O error with no entry context, e.g. the walk root cannot be read."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"<unknown path>: io error: {cause}")
        self.__cause__ = cause


class EntryError(FimbleError):
    """An I/O error scoped to a single filesystem entry."""

    def __init__(self, path: str | os.PathLike[str], cause: Exception) -> None:
        self.path = os.fspath(path)
        super().__init__(f"{self.path}: io error: {cause}")
        self.__cause__ = cause


class ManifestCheckFailed(FimbleError):
    """The recomputed tree digest does not match the manifest's digest."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Manifest file integrity check failed - something has changed"
        )


class ManifestModeError(FimbleError):
    """A scan check was requested that the manifest's representation can't serve."""


class ManifestFormatError(FimbleError):
    """A serialized manifest could not be decoded."""
