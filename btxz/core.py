"""Format dispatcher: the entry points used by the CLI and by library callers.

New archives are always written in the newest format. Reading peeks the
6-byte signature/version prefix and hands the file to the codec registered
for that version, so archives written by older releases stay readable.
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Union

from .archive import ArchiveFormat, LevelLike
from .constants import FORMAT_V1, FORMAT_V2
from .encryption import KdfParams, Password
from .entryutil import ArchiveEntry
from .errors import UnsupportedVersion
from .format_v1 import FormatV1
from .format_v2 import FormatV2
from .header import HeaderV1, HeaderV2, peek_version


logger = logging.getLogger(__name__)


class FormatVersion(IntEnum):
    V1 = FORMAT_V1
    V2 = FORMAT_V2


FORMATS: Dict[FormatVersion, ArchiveFormat] = {
    FormatVersion.V1: FormatV1(),
    FormatVersion.V2: FormatV2(),
}

LATEST_VERSION = FormatVersion.V2


def detect_version(archive_path: str) -> FormatVersion:
    version = peek_version(archive_path)
    try:
        detected = FormatVersion(version)
    except ValueError:
        raise UnsupportedVersion(version) from None
    logger.debug("%s is a v%d archive", archive_path, int(detected))
    return detected


def codec_for(archive_path: str) -> ArchiveFormat:
    return FORMATS[detect_version(archive_path)]


def create_archive(
    archive_path: str,
    input_paths: Sequence[str],
    password: Password,
    compression_level: LevelLike = "default",
    *,
    kdf_params: Optional[KdfParams] = None,
) -> None:
    """Create a new archive at ``archive_path`` in the latest format.

    Args:
        archive_path: Destination file; overwritten if it exists.
        input_paths: Files and/or directories to store.
        password: Required; the latest format always encrypts.
        compression_level: "fast", "default" or "best" (or a CompressionLevel).
        kdf_params: Argon2id cost override; stored in the header.
    """
    FORMATS[LATEST_VERSION].build(
        archive_path,
        input_paths,
        password,
        compression_level,
        kdf_params=kdf_params,
    )


def extract_archive(archive_path: str, outdir: str, password: Password = "") -> List[str]:
    """Extract any supported archive version into ``outdir``.

    Returns the in-archive names of entries skipped because they would have
    been written outside ``outdir``.
    """
    return codec_for(archive_path).extract(archive_path, outdir, password)


def list_archive_contents(archive_path: str, password: Password = "") -> List[ArchiveEntry]:
    return codec_for(archive_path).list(archive_path, password)


def describe_archive(archive_path: str) -> Union[HeaderV1, HeaderV2]:
    """Return the decoded header of ``archive_path`` (no password needed)."""
    return codec_for(archive_path).read_header(archive_path)


__all__ = [
    "FormatVersion",
    "FORMATS",
    "LATEST_VERSION",
    "detect_version",
    "create_archive",
    "extract_archive",
    "list_archive_contents",
    "describe_archive",
]
