from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from .errors import IOFailure
from .pathutil import to_archive_name


KIND_FILE = 0
KIND_DIR = 1


@dataclass
class ArchiveEntry:
    """Metadata of one archived file or directory, as reported by listing."""

    name: str
    mode: int  # permission bits only (0o7777 mask)
    size: int
    kind: int = KIND_FILE

    @property
    def is_dir(self) -> bool:
        return self.kind == KIND_DIR

    @property
    def mode_string(self) -> str:
        type_bits = stat.S_IFDIR if self.is_dir else stat.S_IFREG
        return stat.filemode(type_bits | self.mode)


@dataclass
class InputFile:
    arc_name: str
    fs_path: str
    mode: int
    size: int
    mtime: float


def _raise_walk_error(exc: OSError) -> None:
    raise IOFailure(f"failed while walking input: {exc}") from exc


def _input_file(fs_path: str, base_path: str) -> Optional[InputFile]:
    try:
        st = os.stat(fs_path)
    except OSError as exc:
        raise IOFailure(f"could not stat input file {fs_path}: {exc}") from exc
    if not stat.S_ISREG(st.st_mode):
        return None
    return InputFile(
        arc_name=to_archive_name(os.path.relpath(fs_path, base_path)),
        fs_path=fs_path,
        mode=st.st_mode & 0o7777,
        size=st.st_size,
        mtime=st.st_mtime,
    )


def iter_input_files(input_paths: Sequence[str]) -> Iterator[InputFile]:
    """Yield every regular file reachable from ``input_paths`` in a stable order.

    A file input is stored under its base name. A directory input contributes
    its contents relative to the directory itself. Directories are never
    yielded; on extraction they are recreated from the file paths, so empty
    directories are not preserved.
    """
    if not input_paths:
        raise ValueError("no input files or folders specified")
    for path in input_paths:
        try:
            st = os.stat(path)
        except OSError as exc:
            raise IOFailure(f"could not stat input path {path}: {exc}") from exc
        if not stat.S_ISDIR(st.st_mode):
            info = _input_file(path, os.path.dirname(path) or ".")
            if info is not None:
                yield info
            continue
        for root, dirnames, filenames in os.walk(path, onerror=_raise_walk_error):
            dirnames.sort()
            for fn in sorted(filenames):
                full = os.path.join(root, fn)
                info = _input_file(full, path)
                if info is not None:
                    yield info


def collect_input_files(input_paths: Sequence[str]) -> List[InputFile]:
    return list(iter_input_files(input_paths))
