"""BTXZ format v1: tar stream -> xz -> optional AES-256-GCM.

Legacy layout. The dispatcher never creates v1 archives any more, but
:meth:`FormatV1.build` is kept so the format stays testable and so tools can
produce v1 files for compatibility checks.
"""
from __future__ import annotations

import contextlib
import io
import logging
import lzma
import tarfile
from functools import partial
from typing import BinaryIO, Iterator, List, Optional, Sequence

from .archive import ArchiveFormat, LevelLike, Member
from .constants import (
    FORMAT_V1,
    MODE_ENCRYPTED,
    NAMES_ENCRYPTED,
    XZ_PRESET,
)
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
from .errors import IOFailure, PasswordRequired
from .header import HeaderV1


logger = logging.getLogger(__name__)


def _add_file_to_tar(tf: tarfile.TarFile, item: InputFile) -> None:
    info = tarfile.TarInfo(item.arc_name)
    info.type = tarfile.REGTYPE
    info.size = item.size
    info.mode = item.mode
    info.mtime = int(item.mtime)
    with open(item.fs_path, "rb") as fh:
        tf.addfile(info, fh)


class FormatV1(ArchiveFormat):
    version = FORMAT_V1
    header_cls = HeaderV1
    corruption_errors = (tarfile.TarError, lzma.LZMAError, EOFError)

    def build(
        self,
        archive_path: str,
        input_paths: Sequence[str],
        password: Password = "",
        compression_level: LevelLike = None,
        *,
        kdf_params: Optional[KdfParams] = None,
    ) -> None:
        """Create a v1 archive; encrypted when ``password`` is non-empty.

        ``compression_level`` is accepted for interface parity and ignored:
        v1 always uses the fixed xz preset.
        """
        files = collect_input_files(input_paths)

        compressed = io.BytesIO()
        try:
            with tarfile.open(fileobj=compressed, mode="w:xz", preset=XZ_PRESET, format=tarfile.PAX_FORMAT) as tf:
                for item in files:
                    _add_file_to_tar(tf, item)
                    logger.debug("added %s (%d bytes)", item.arc_name, item.size)
        except OSError as exc:
            raise IOFailure(f"failed while adding input files: {exc}") from exc
        payload = compressed.getvalue()

        header = HeaderV1()
        if password:
            params = kdf_params or KdfParams()
            # names are encrypted exactly when the payload is
            header.protection_mode = MODE_ENCRYPTED
            header.names_encrypted = NAMES_ENCRYPTED
            header.salt = random_salt()
            header.nonce = random_nonce()
            header.argon_time = params.time_cost
            header.argon_memory_kib = params.memory_cost_kib
            header.argon_threads = params.parallelism
            key = derive_key(password, header.salt, params)
            try:
                payload = seal_payload(key, header.nonce, payload)
            finally:
                wipe(key)

        self._write_archive(archive_path, header.pack(), payload)

    @contextlib.contextmanager
    def _payload_stream(self, archive_path: str, password: Password) -> Iterator[BinaryIO]:
        """Yield a reader over the xz-compressed tar stream.

        Plaintext archives are read straight from the file; encrypted ones are
        read whole, authenticated and served from memory.
        """
        f = self._open_archive(archive_path)
        try:
            header = HeaderV1.read(f)
            if not header.encrypted:
                yield f
                return
            if not password:
                raise PasswordRequired("archive is encrypted, but no password was provided")
            sealed = self._read_rest(f)
            f.close()
            params = KdfParams(header.argon_time, header.argon_memory_kib, header.argon_threads)
            key = derive_key(password, header.salt, params)
            try:
                plain = open_payload(key, header.nonce, sealed)
            finally:
                wipe(key)
            with io.BytesIO(plain) as buf:
                yield buf
        finally:
            f.close()

    def _iter_members(self, stream: BinaryIO) -> Iterator[Member]:
        with tarfile.open(fileobj=stream, mode="r|xz") as tf:
            for member in tf:
                if member.isdir():
                    yield ArchiveEntry(member.name, member.mode & 0o7777, 0, KIND_DIR), None
                elif member.isreg():
                    entry = ArchiveEntry(member.name, member.mode & 0o7777, member.size, KIND_FILE)
                    yield entry, partial(tf.extractfile, member)
                else:
                    logger.warning("ignoring unsupported tar entry type for %r", member.name)

    def extract(self, archive_path: str, outdir: str, password: Password = "") -> List[str]:
        with self._payload_stream(archive_path, password) as stream:
            return self._extract_members(self._iter_members(stream), outdir)

    def list(self, archive_path: str, password: Password = "") -> List[ArchiveEntry]:
        with self._payload_stream(archive_path, password) as stream:
            return self._list_members(self._iter_members(stream))
