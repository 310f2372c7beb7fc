from __future__ import annotations

import io
import os
import subprocess
import sys
import tarfile
import tempfile
import unittest
from pathlib import Path
from typing import Dict

from btxz.header import HeaderV1


KDF_ARGS = ["--kdf-time", "1", "--kdf-memory", "64", "--kdf-threads", "1"]


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "docs" / "notes").mkdir(parents=True)
    content = b"hello world\n" * 20
    (root / "docs" / "readme.txt").write_bytes(content)
    os.chmod(root / "docs" / "readme.txt", 0o644)
    files["docs/readme.txt"] = content

    bin_data = os.urandom(2048)
    (root / "docs" / "notes" / "binary.bin").write_bytes(bin_data)
    os.chmod(root / "docs" / "notes" / "binary.bin", 0o600)
    files["docs/notes/binary.bin"] = bin_data

    (root / "docs" / "notes" / "empty.txt").write_text("")
    files["docs/notes/empty.txt"] = b""
    return files


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "btxz.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.src = self.root / "src"
        self.src.mkdir()
        self.files = _build_fixture_tree(self.src)

    def test_create_list_extract_info(self):
        archive = self.root / "archive.btxz"
        create_proc = self.run_cli(["create", str(archive), str(self.src), "--password", "pw", "--level", "best"] + KDF_ARGS)
        self.assertIn("Done:", create_proc.stdout)
        self.assertIn("compression=best", create_proc.stdout)

        list_proc = self.run_cli(["list", str(archive), "--password", "pw"])
        self.assertIn("Found 3 entries", list_proc.stdout)
        self.assertIn("-rw-------\t2048\tdocs/notes/binary.bin", list_proc.stdout)

        info_proc = self.run_cli(["info", str(archive)])
        self.assertIn("Format: v2", info_proc.stdout)
        self.assertIn("Compression: best", info_proc.stdout)
        self.assertIn("memory=64 KiB", info_proc.stdout)

        out = self.root / "out"
        self.run_cli(["extract", str(archive), "--password", "pw", "--outdir", str(out)])
        for name, data in self.files.items():
            self.assertEqual(data, (out / name).read_bytes(), name)

    def test_create_without_password_fails(self):
        archive = self.root / "nopw.btxz"
        proc = self.run_cli(["create", str(archive), str(self.src)] + KDF_ARGS, expect=2)
        self.assertIn("password is required", proc.stderr)
        self.assertFalse(archive.exists())

    def test_explicit_zero_kdf_cost_rejected(self):
        archive = self.root / "zero.btxz"
        proc = self.run_cli(
            ["create", str(archive), str(self.src), "-p", "pw", "--kdf-time", "0", "--kdf-memory", "64", "--kdf-threads", "1"],
            expect=2,
        )
        self.assertIn("invalid Argon2 time cost: 0", proc.stderr)
        self.assertFalse(archive.exists())

    def test_wrong_password(self):
        archive = self.root / "archive.btxz"
        self.run_cli(["create", str(archive), str(self.src), "-p", "right"] + KDF_ARGS)
        out = self.root / "out"
        proc = self.run_cli(["extract", str(archive), "-p", "wrong", "-o", str(out)], expect=2)
        self.assertIn("Decryption failed", proc.stderr)
        self.assertFalse(out.exists())
        proc = self.run_cli(["list", str(archive), "-p", "wrong"], expect=2)
        self.assertIn("Decryption failed", proc.stderr)

    def test_not_an_archive(self):
        bogus = self.root / "bogus.btxz"
        bogus.write_bytes(b"PK\x03\x04 not ours")
        proc = self.run_cli(["info", str(bogus)], expect=2)
        self.assertIn("Error:", proc.stderr)

    def test_legacy_archive_with_unsafe_entries(self):
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:xz") as tf:
            for name, data in (("../evil.txt", b"evil"), ("ok.txt", b"ok")):
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
        archive = self.root / "legacy.btxz"
        archive.write_bytes(HeaderV1().pack() + buf.getvalue())

        info_proc = self.run_cli(["info", str(archive)])
        self.assertIn("Format: v1", info_proc.stdout)
        self.assertIn("Encrypted: no", info_proc.stdout)

        out = self.root / "work" / "out"
        proc = self.run_cli(["extract", str(archive), "-o", str(out)], expect=1)
        self.assertIn("  - ../evil.txt", proc.stdout)
        self.assertEqual(b"ok", (out / "ok.txt").read_bytes())
        self.assertFalse((self.root / "work" / "evil.txt").exists())


if __name__ == "__main__":
    unittest.main()
