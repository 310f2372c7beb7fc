from __future__ import annotations

import io
from enum import IntEnum
from typing import Union

import zstandard

from .constants import LEVEL_FAST, LEVEL_DEFAULT, LEVEL_BEST, ZSTD_LEVELS, COPY_BUFSIZE


class CompressionLevel(IntEnum):
    FAST = LEVEL_FAST
    DEFAULT = LEVEL_DEFAULT
    BEST = LEVEL_BEST

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def zstd_level(self) -> int:
        return ZSTD_LEVELS[int(self)]

    @classmethod
    def parse(cls, value: Union[str, int, "CompressionLevel", None]) -> "CompressionLevel":
        """Map a level name ("fast", "default", "best") or code to a level.

        Unrecognized names select DEFAULT.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return cls.DEFAULT
        name = (value or "").strip().lower()
        if name == "fast":
            return cls.FAST
        if name == "best":
            return cls.BEST
        return cls.DEFAULT

    @classmethod
    def describe(cls, code: int) -> str:
        try:
            return cls(code).label
        except ValueError:
            return f"unknown ({code})"


def zstd_compress(data: bytes, level: CompressionLevel) -> bytes:
    """Stream ``data`` through a Zstandard compressor at the chosen tier."""
    cctx = zstandard.ZstdCompressor(level=level.zstd_level)
    out = io.BytesIO()
    cctx.copy_stream(io.BytesIO(data), out, read_size=COPY_BUFSIZE, write_size=COPY_BUFSIZE)
    return out.getvalue()


def zstd_decompress(data: bytes) -> bytes:
    # Streamed frames may not record their content size, so one-shot
    # ZstdDecompressor.decompress() is not usable here.
    dctx = zstandard.ZstdDecompressor()
    out = io.BytesIO()
    dctx.copy_stream(io.BytesIO(data), out, read_size=COPY_BUFSIZE, write_size=COPY_BUFSIZE)
    return out.getvalue()


__all__ = [
    "CompressionLevel",
    "zstd_compress",
    "zstd_decompress",
]
