from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

from .constants import (
    MAGIC_SIGNATURE,
    PEEK_SIZE,
    FORMAT_V1,
    FORMAT_V2,
    MODE_UNPROTECTED,
    MODE_ENCRYPTED,
    SALT_SIZE,
    NONCE_SIZE,
)
from .errors import InvalidFormat, IOFailure


_PEEK_STRUCT = struct.Struct("<4sH")

# Fields (little endian), no padding:
# magic[4], version u16, protection_mode u8, names_encrypted u8,
# salt[16], argon_time u32, argon_memory_kib u32, argon_threads u8, nonce[12]
_HEADER_V1_STRUCT = struct.Struct("<4sHBB16sIIB12s")

# magic[4], version u16, compression_level u8,
# salt[16], argon_time u32, argon_memory_kib u32, argon_threads u8, nonce[12]
_HEADER_V2_STRUCT = struct.Struct("<4sHB16sIIB12s")

HEADER_V1_SIZE = _HEADER_V1_STRUCT.size  # 45
HEADER_V2_SIZE = _HEADER_V2_STRUCT.size  # 44


def _read_exact(f: BinaryIO, size: int, what: str) -> bytes:
    raw = f.read(size)
    if len(raw) != size:
        raise InvalidFormat(f"{what} too short: expected {size} bytes, got {len(raw)}")
    return raw


@dataclass
class HeaderV1:
    protection_mode: int = MODE_UNPROTECTED
    names_encrypted: int = MODE_UNPROTECTED
    salt: bytes = b"\x00" * SALT_SIZE
    argon_time: int = 0
    argon_memory_kib: int = 0
    argon_threads: int = 0
    nonce: bytes = b"\x00" * NONCE_SIZE
    version: int = FORMAT_V1

    @property
    def encrypted(self) -> bool:
        return self.protection_mode == MODE_ENCRYPTED

    def pack(self) -> bytes:
        return _HEADER_V1_STRUCT.pack(
            MAGIC_SIGNATURE,
            self.version,
            self.protection_mode,
            self.names_encrypted,
            self.salt,
            self.argon_time,
            self.argon_memory_kib,
            self.argon_threads,
            self.nonce,
        )

    @classmethod
    def unpack(cls, raw: bytes) -> "HeaderV1":
        if len(raw) != HEADER_V1_SIZE:
            raise InvalidFormat("v1 header has wrong size")
        (magic, version, mode, names, salt, atime, amem, athreads, nonce) = _HEADER_V1_STRUCT.unpack(raw)
        if magic != MAGIC_SIGNATURE:
            raise InvalidFormat("not a valid BTXZ archive")
        if version != FORMAT_V1:
            raise InvalidFormat(f"archive header mismatch for v1 reader (version {version})")
        if mode not in (MODE_UNPROTECTED, MODE_ENCRYPTED):
            raise InvalidFormat(f"unknown protection mode: {mode}")
        return cls(
            protection_mode=mode,
            names_encrypted=names,
            salt=salt,
            argon_time=atime,
            argon_memory_kib=amem,
            argon_threads=athreads,
            nonce=nonce,
            version=version,
        )

    @classmethod
    def read(cls, f: BinaryIO) -> "HeaderV1":
        return cls.unpack(_read_exact(f, HEADER_V1_SIZE, "v1 header"))


@dataclass
class HeaderV2:
    compression_level: int
    salt: bytes
    argon_time: int
    argon_memory_kib: int
    argon_threads: int
    nonce: bytes
    version: int = FORMAT_V2

    def pack(self) -> bytes:
        return _HEADER_V2_STRUCT.pack(
            MAGIC_SIGNATURE,
            self.version,
            self.compression_level,
            self.salt,
            self.argon_time,
            self.argon_memory_kib,
            self.argon_threads,
            self.nonce,
        )

    @classmethod
    def unpack(cls, raw: bytes) -> "HeaderV2":
        if len(raw) != HEADER_V2_SIZE:
            raise InvalidFormat("v2 header has wrong size")
        (magic, version, level, salt, atime, amem, athreads, nonce) = _HEADER_V2_STRUCT.unpack(raw)
        if magic != MAGIC_SIGNATURE:
            raise InvalidFormat("not a valid BTXZ archive")
        if version != FORMAT_V2:
            raise InvalidFormat(f"archive header mismatch for v2 reader (version {version})")
        return cls(
            compression_level=level,
            salt=salt,
            argon_time=atime,
            argon_memory_kib=amem,
            argon_threads=athreads,
            nonce=nonce,
            version=version,
        )

    @classmethod
    def read(cls, f: BinaryIO) -> "HeaderV2":
        return cls.unpack(_read_exact(f, HEADER_V2_SIZE, "v2 header"))


def peek_version(archive_path: str) -> int:
    """Read the signature and version of ``archive_path`` and close it again.

    Only the first 6 bytes are read; the version-specific codec reopens the
    file itself.
    """
    try:
        with open(archive_path, "rb") as f:
            raw = f.read(PEEK_SIZE)
    except OSError as exc:
        raise IOFailure(f"could not open archive file: {exc}") from exc
    if len(raw) != PEEK_SIZE:
        raise InvalidFormat("not a valid BTXZ archive: file too short")
    magic, version = _PEEK_STRUCT.unpack(raw)
    if magic != MAGIC_SIGNATURE:
        raise InvalidFormat("not a valid BTXZ archive")
    return version
