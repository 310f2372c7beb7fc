from __future__ import annotations

import os

from .errors import PathTraversalSkipped


def to_archive_name(rel_path: str) -> str:
    """Convert a filesystem-relative path into the portable in-archive form.

    Rules:
    - Platform separators become forward slashes
    - Empty and '.' segments are dropped
    """
    p = rel_path.replace(os.sep, "/")
    if os.altsep:
        p = p.replace(os.altsep, "/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    return "/".join(parts)


class ExtractionGuard:
    """Keeps extracted entries inside one destination directory.

    The destination is resolved to an absolute, normalized path once. Each
    entry name is joined onto it and normalized lexically; results that leave
    the destination raise :class:`PathTraversalSkipped`, which callers record
    and move past.
    """

    def __init__(self, outdir: str):
        self.root = os.path.abspath(os.path.normpath(outdir or "."))

    def contains(self, target: str) -> bool:
        try:
            return os.path.commonpath([self.root, target]) == self.root
        except ValueError:  # different drives on Windows
            return False

    def resolve(self, name: str, *, is_dir: bool = False) -> str:
        target = os.path.normpath(os.path.join(self.root, name))
        if not self.contains(target):
            raise PathTraversalSkipped(name)
        # a file can never be written over the destination directory itself
        if target == self.root and not is_dir:
            raise PathTraversalSkipped(name)
        return target


__all__ = ["to_archive_name", "ExtractionGuard"]
