from __future__ import annotations

import os
import struct
import tempfile
import unittest
from pathlib import Path

from btxz.constants import MAGIC_SIGNATURE, MODE_ENCRYPTED, MODE_UNPROTECTED
from btxz.core import (
    FormatVersion,
    describe_archive,
    detect_version,
    extract_archive,
    list_archive_contents,
)
from btxz.errors import InvalidFormat, IOFailure, UnsupportedVersion
from btxz.header import HEADER_V1_SIZE, HEADER_V2_SIZE, HeaderV1, HeaderV2, peek_version


def _sample_v2() -> HeaderV2:
    return HeaderV2(
        compression_level=3,
        salt=bytes(range(16)),
        argon_time=2,
        argon_memory_kib=1024,
        argon_threads=3,
        nonce=bytes(range(100, 112)),
    )


class HeaderLayoutTests(unittest.TestCase):
    def test_sizes(self):
        self.assertEqual(45, HEADER_V1_SIZE)
        self.assertEqual(44, HEADER_V2_SIZE)
        self.assertEqual(45, len(HeaderV1().pack()))
        self.assertEqual(44, len(_sample_v2().pack()))

    def test_v1_field_offsets(self):
        hdr = HeaderV1(
            protection_mode=MODE_ENCRYPTED,
            names_encrypted=MODE_ENCRYPTED,
            salt=b"S" * 16,
            argon_time=1,
            argon_memory_kib=65536,
            argon_threads=4,
            nonce=b"N" * 12,
        )
        raw = hdr.pack()
        self.assertEqual(MAGIC_SIGNATURE, raw[0:4])
        self.assertEqual(b"\x01\x00", raw[4:6])
        self.assertEqual(1, raw[6])
        self.assertEqual(1, raw[7])
        self.assertEqual(b"S" * 16, raw[8:24])
        self.assertEqual((1,), struct.unpack("<I", raw[24:28]))
        self.assertEqual((65536,), struct.unpack("<I", raw[28:32]))
        self.assertEqual(4, raw[32])
        self.assertEqual(b"N" * 12, raw[33:45])
        self.assertEqual(hdr, HeaderV1.unpack(raw))

    def test_v2_field_offsets(self):
        hdr = _sample_v2()
        raw = hdr.pack()
        self.assertEqual(MAGIC_SIGNATURE, raw[0:4])
        self.assertEqual(b"\x02\x00", raw[4:6])
        self.assertEqual(3, raw[6])
        self.assertEqual(bytes(range(16)), raw[7:23])
        self.assertEqual((2, 1024), struct.unpack("<II", raw[23:31]))
        self.assertEqual(3, raw[31])
        self.assertEqual(bytes(range(100, 112)), raw[32:44])
        self.assertEqual(hdr, HeaderV2.unpack(raw))

    def test_plaintext_v1_defaults_are_zero(self):
        hdr = HeaderV1()
        self.assertEqual(MODE_UNPROTECTED, hdr.protection_mode)
        self.assertEqual(hdr.protection_mode, hdr.names_encrypted)
        self.assertEqual(b"\x00" * 16, hdr.salt)
        self.assertEqual(b"\x00" * 12, hdr.nonce)
        self.assertEqual((0, 0, 0), (hdr.argon_time, hdr.argon_memory_kib, hdr.argon_threads))

    def test_unpack_rejects_wrong_version_and_mode(self):
        raw = bytearray(HeaderV1().pack())
        raw[4:6] = b"\x02\x00"
        with self.assertRaises(InvalidFormat):
            HeaderV1.unpack(bytes(raw))
        raw = bytearray(HeaderV1().pack())
        raw[6] = 7
        with self.assertRaises(InvalidFormat):
            HeaderV1.unpack(bytes(raw))
        raw = bytearray(_sample_v2().pack())
        raw[0:4] = b"XXXX"
        with self.assertRaises(InvalidFormat):
            HeaderV2.unpack(bytes(raw))


class PeekVersionTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def _write(self, name: str, data: bytes) -> str:
        p = self.root / name
        p.write_bytes(data)
        return str(p)

    def test_reads_version(self):
        path = self._write("v2.btxz", _sample_v2().pack() + b"payload")
        self.assertEqual(2, peek_version(path))
        self.assertIs(FormatVersion.V2, detect_version(path))
        path = self._write("v1.btxz", HeaderV1().pack())
        self.assertIs(FormatVersion.V1, detect_version(path))

    def test_bad_signature(self):
        path = self._write("bad.btxz", b"PK\x03\x04" + b"\x00" * 60)
        with self.assertRaises(InvalidFormat):
            peek_version(path)

    def test_short_file(self):
        path = self._write("short.btxz", b"BTXZ\x01")
        with self.assertRaises(InvalidFormat):
            peek_version(path)

    def test_missing_file(self):
        with self.assertRaises(IOFailure):
            peek_version(str(self.root / "nope.btxz"))

    def test_truncated_header_after_valid_prefix(self):
        path = self._write("trunc.btxz", MAGIC_SIGNATURE + b"\x02\x00" + b"\x01" * 10)
        with self.assertRaises(InvalidFormat):
            list_archive_contents(path, "pw")

    def test_unsupported_version_on_every_read_entry_point(self):
        path = self._write("v9.btxz", MAGIC_SIGNATURE + struct.pack("<H", 9) + os.urandom(64))
        outdir = self.root / "out"
        with self.assertRaises(UnsupportedVersion) as ctx:
            extract_archive(path, str(outdir), "pw")
        self.assertEqual(9, ctx.exception.version)
        self.assertFalse(outdir.exists())
        with self.assertRaises(UnsupportedVersion):
            list_archive_contents(path, "pw")
        with self.assertRaises(UnsupportedVersion):
            describe_archive(path)


if __name__ == "__main__":
    unittest.main()
