from __future__ import annotations

import contextlib
import logging
import os
import shutil
from typing import BinaryIO, Callable, Iterator, List, Optional, Sequence, Tuple, Union

from .compression import CompressionLevel
from .constants import COPY_BUFSIZE, DEFAULT_DIR_MODE
from .encryption import KdfParams, Password
from .entryutil import ArchiveEntry
from .errors import CorruptArchive, IOFailure, PathTraversalSkipped
from .pathutil import ExtractionGuard


logger = logging.getLogger(__name__)

MemberOpener = Optional[Callable[[], BinaryIO]]
Member = Tuple[ArchiveEntry, MemberOpener]
LevelLike = Union[str, int, CompressionLevel, None]


class ArchiveFormat:
    """One on-disk format version.

    Subclasses implement ``build``, ``extract`` and ``list`` for their
    version and are registered with the dispatcher in :mod:`btxz.core`.
    Existing versions are never modified once released; a new layout is a
    new subclass.
    """

    version: int = 0
    header_cls: type = type(None)
    # payload decoding errors that mean the archive content is corrupt
    corruption_errors: Tuple[type, ...] = ()

    def build(
        self,
        archive_path: str,
        input_paths: Sequence[str],
        password: Password = "",
        compression_level: LevelLike = None,
        *,
        kdf_params: Optional[KdfParams] = None,
    ) -> None:
        raise NotImplementedError

    def extract(self, archive_path: str, outdir: str, password: Password = "") -> List[str]:
        raise NotImplementedError

    def list(self, archive_path: str, password: Password = "") -> List[ArchiveEntry]:
        raise NotImplementedError

    def read_header(self, archive_path: str):
        """Decode just the header; no password needed."""
        with self._open_archive(archive_path) as f:
            return self.header_cls.read(f)

    # shared helpers
    @staticmethod
    def _open_archive(archive_path: str) -> BinaryIO:
        try:
            return open(archive_path, "rb")
        except OSError as exc:
            raise IOFailure(f"could not open archive file: {exc}") from exc

    @staticmethod
    def _read_rest(f: BinaryIO) -> bytes:
        try:
            return f.read()
        except OSError as exc:
            raise IOFailure(f"could not read archive payload: {exc}") from exc

    @staticmethod
    def _write_archive(archive_path: str, header: bytes, payload: bytes) -> None:
        """Write header + payload, removing the partial file if writing fails."""
        try:
            with open(archive_path, "wb") as f:
                f.write(header)
                f.write(payload)
        except OSError as exc:
            try:
                os.unlink(archive_path)
            except OSError:
                pass
            raise IOFailure(f"could not write archive file: {exc}") from exc
        logger.debug("wrote %s: %d header bytes, %d payload bytes", archive_path, len(header), len(payload))

    def _list_members(self, members: Iterator[Member]) -> List[ArchiveEntry]:
        try:
            with contextlib.closing(members):
                return [entry for entry, _opener in members]
        except self.corruption_errors as exc:
            raise CorruptArchive(f"error reading archive stream: {exc}") from exc

    def _extract_members(self, members: Iterator[Member], outdir: str) -> List[str]:
        """Materialize ``members`` below ``outdir``.

        Entries whose path escapes ``outdir`` are skipped and returned by
        their in-archive name. Decoding and filesystem failures are fatal and
        carry the names skipped so far.
        """
        guard = ExtractionGuard(outdir)
        skipped: List[str] = []
        extracted = 0
        try:
            with contextlib.closing(members):
                for entry, opener in members:
                    try:
                        target = guard.resolve(entry.name, is_dir=entry.is_dir)
                    except PathTraversalSkipped as exc:
                        logger.warning("skipping unsafe entry: %r", exc.name)
                        skipped.append(exc.name)
                        continue
                    if entry.is_dir or opener is None:
                        _make_dir(target, entry.mode)
                        continue
                    with opener() as src:
                        _write_file(target, src, entry.mode)
                    extracted += 1
        except self.corruption_errors as exc:
            raise CorruptArchive(f"error reading archive stream: {exc}", skipped=skipped) from exc
        except OSError as exc:
            raise IOFailure(f"could not extract entry: {exc}", skipped=skipped) from exc
        logger.debug("extracted %d file(s) into %s, skipped %d", extracted, guard.root, len(skipped))
        return skipped


def _make_dir(target: str, mode: int) -> None:
    if not os.path.isdir(target):
        os.makedirs(target, mode or DEFAULT_DIR_MODE, exist_ok=True)


def _safe_chmod(path: str, mode: int) -> None:
    try:
        os.chmod(path, mode)
    except OSError as exc:
        logger.warning("failed to set mode on %s: %s", path, exc)


def _write_file(target: str, src: BinaryIO, mode: int) -> None:
    os.makedirs(os.path.dirname(target), DEFAULT_DIR_MODE, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as out:
        shutil.copyfileobj(src, out, COPY_BUFSIZE)
    # os.open only applies mode to new files, filtered by umask
    _safe_chmod(target, mode)
