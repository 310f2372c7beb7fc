from __future__ import annotations

from typing import List, Optional


class BtxzError(Exception):
    """Base class for BTXZ-specific errors.

    ``skipped`` carries the entry names already skipped by the extraction
    guard when a fatal error interrupts an extraction.
    """

    def __init__(self, message: str = "", *, skipped: Optional[List[str]] = None):
        super().__init__(message)
        self.skipped: List[str] = list(skipped or [])


# Header / dispatch
class InvalidFormat(BtxzError):
    pass


class UnsupportedVersion(BtxzError):
    def __init__(self, version: int, *, skipped: Optional[List[str]] = None):
        super().__init__(f"unsupported archive core version: v{version}", skipped=skipped)
        self.version = version


# Keys / payload
class PasswordRequired(BtxzError):
    pass


class DecryptionFailed(BtxzError):
    pass


# Filesystem and payload decoding
class IOFailure(BtxzError):
    pass


class CorruptArchive(BtxzError):
    pass


class PathTraversalSkipped(BtxzError):
    """Entry would land outside the extraction directory. Never fatal."""

    def __init__(self, name: str):
        super().__init__(f"unsafe entry path: {name!r}")
        self.name = name


class InvalidEntryName(BtxzError):
    """Input path cannot be stored as an archive entry name."""

    def __init__(self, path: str):
        super().__init__(f"input path is not valid UTF-8 and cannot be stored: {path!r}")
        self.path = path
