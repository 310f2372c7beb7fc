"""BTXZ format v2: zip (stored entries) -> Zstandard -> AES-256-GCM.

Encryption is mandatory. The zip container is compressed once as a whole, so
its own per-entry compression is disabled. Reading needs the full
decompressed container in memory because zip is indexed from its trailing
central directory.
"""
from __future__ import annotations

import io
import logging
import shutil
import zipfile
from functools import partial
from typing import Iterator, List, Optional, Sequence

import zstandard

from .archive import ArchiveFormat, LevelLike, Member
from .compression import CompressionLevel, zstd_compress, zstd_decompress
from .constants import COPY_BUFSIZE, DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, FORMAT_V2
from .encryption import (
    KdfParams,
    Password,
    derive_key,
    open_payload,
    random_nonce,
    random_salt,
    seal_payload,
    wipe,
)
from .entryutil import ArchiveEntry, InputFile, KIND_DIR, KIND_FILE, collect_input_files
from .errors import CorruptArchive, IOFailure, InvalidEntryName, PasswordRequired
from .header import HeaderV2


logger = logging.getLogger(__name__)


def _add_file_to_zip(zf: zipfile.ZipFile, item: InputFile) -> None:
    # zip names are UTF-8; undecodable filesystem names surface as surrogates
    try:
        item.arc_name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidEntryName(item.fs_path) from exc
    zinfo = zipfile.ZipInfo.from_file(item.fs_path, arcname=item.arc_name, strict_timestamps=False)
    zinfo.compress_type = zipfile.ZIP_STORED
    with open(item.fs_path, "rb") as src, zf.open(zinfo, "w") as dst:
        shutil.copyfileobj(src, dst, COPY_BUFSIZE)


def _zip_entry(zinfo: zipfile.ZipInfo) -> ArchiveEntry:
    is_dir = zinfo.is_dir()
    mode = (zinfo.external_attr >> 16) & 0o7777
    if not mode:
        # archives written without unix attributes
        mode = DEFAULT_DIR_MODE if is_dir else DEFAULT_FILE_MODE
    return ArchiveEntry(
        name=zinfo.filename,
        mode=mode,
        size=zinfo.file_size,
        kind=KIND_DIR if is_dir else KIND_FILE,
    )


class FormatV2(ArchiveFormat):
    version = FORMAT_V2
    header_cls = HeaderV2
    corruption_errors = (zipfile.BadZipFile, zipfile.LargeZipFile, zstandard.ZstdError, EOFError, NotImplementedError)

    def build(
        self,
        archive_path: str,
        input_paths: Sequence[str],
        password: Password = "",
        compression_level: LevelLike = None,
        *,
        kdf_params: Optional[KdfParams] = None,
    ) -> None:
        if not input_paths:
            raise ValueError("no input files or folders specified")
        if not password:
            raise PasswordRequired("a password is required for v2 archives")
        level = CompressionLevel.parse(compression_level)
        params = kdf_params or KdfParams()
        params.validate()
        files = collect_input_files(input_paths)

        container = io.BytesIO()
        try:
            with zipfile.ZipFile(container, "w", compression=zipfile.ZIP_STORED, allowZip64=True) as zf:
                for item in files:
                    _add_file_to_zip(zf, item)
                    logger.debug("added %s (%d bytes)", item.arc_name, item.size)
        except OSError as exc:
            raise IOFailure(f"failed while adding input files: {exc}") from exc
        compressed = zstd_compress(container.getvalue(), level)
        logger.debug("container %d bytes -> %d bytes at level %s", container.tell(), len(compressed), level.label)

        header = HeaderV2(
            compression_level=int(level),
            salt=random_salt(),
            argon_time=params.time_cost,
            argon_memory_kib=params.memory_cost_kib,
            argon_threads=params.parallelism,
            nonce=random_nonce(),
        )
        key = derive_key(password, header.salt, params)
        try:
            sealed = seal_payload(key, header.nonce, compressed)
        finally:
            wipe(key)

        self._write_archive(archive_path, header.pack(), sealed)

    def _open_container(self, archive_path: str, password: Password) -> zipfile.ZipFile:
        with self._open_archive(archive_path) as f:
            header = HeaderV2.read(f)
            if not password:
                raise PasswordRequired("archive is encrypted, but no password was provided")
            sealed = self._read_rest(f)
        params = KdfParams(header.argon_time, header.argon_memory_kib, header.argon_threads)
        key = derive_key(password, header.salt, params)
        try:
            compressed = open_payload(key, header.nonce, sealed)
        finally:
            wipe(key)
        try:
            data = zstd_decompress(compressed)
            return zipfile.ZipFile(io.BytesIO(data))
        except self.corruption_errors as exc:
            raise CorruptArchive(f"failed to read zip stream from decompressed data: {exc}") from exc

    def _iter_members(self, zf: zipfile.ZipFile) -> Iterator[Member]:
        for zinfo in zf.infolist():
            entry = _zip_entry(zinfo)
            yield entry, (None if entry.is_dir else partial(zf.open, zinfo))

    def extract(self, archive_path: str, outdir: str, password: Password = "") -> List[str]:
        with self._open_container(archive_path, password) as zf:
            return self._extract_members(self._iter_members(zf), outdir)

    def list(self, archive_path: str, password: Password = "") -> List[ArchiveEntry]:
        with self._open_container(archive_path, password) as zf:
            return self._list_members(self._iter_members(zf))
