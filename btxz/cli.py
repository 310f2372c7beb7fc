from __future__ import annotations

import argparse
import getpass as _getpass
import logging
import os
import sys
import time
from typing import List, Optional

from btxz import __version__
from btxz.compression import CompressionLevel
from btxz.core import (
    create_archive,
    describe_archive,
    detect_version,
    extract_archive,
    list_archive_contents,
)
from btxz.encryption import KdfParams
from btxz.errors import (
    BtxzError,
    DecryptionFailed,
    PasswordRequired,
)
from btxz.header import HeaderV1


def _configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root = logging.getLogger("btxz")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _prompt_password(prompt: str) -> str:
    if not sys.stdin.isatty():
        return ""
    return _getpass.getpass(prompt)


def cmd_create(output: str, inputs: list[str], *, password: Optional[str] = None, level: str = "default", kdf_params: Optional[KdfParams] = None) -> bool:
    """Create a new archive (always the latest format).

    Args:
        output: Path of the archive to write.
        inputs: Files and/or directories to store.
        password: Encryption password; prompted for when omitted. Required.
        level: Compression level: "fast", "default" or "best".
        kdf_params: Optional Argon2id cost override.
    """
    if not password:
        password = _prompt_password("Enter encryption password (required): ")
    if not password:
        raise PasswordRequired("a password is required to create a secure archive")
    t0 = time.time()
    create_archive(output, inputs, password, level, kdf_params=kdf_params)
    dt = max(0.000001, time.time() - t0)
    size = os.path.getsize(output)
    print(f"Done: {output} ({size} bytes) in {dt:.1f}s; encrypted=yes; compression={CompressionLevel.parse(level).label}")
    return True


def cmd_extract(archive: str, *, outdir: str = ".", password: Optional[str] = None) -> bool:
    """Extract an archive of any supported version into ``outdir``."""
    if password is None:
        password = _prompt_password("Enter decryption password (if required): ")
    skipped = extract_archive(archive, outdir, password)
    if skipped:
        print("Extraction completed with warnings.")
        print("The following entries were not extracted to protect your system:")
        for name in skipped:
            print(f"  - {name}")
        return False
    print(f"Done: extracted {os.path.basename(archive)} into {outdir}")
    return True


def cmd_list(archive: str, *, password: Optional[str] = None) -> bool:
    """List archive entries as mode, size and name columns."""
    if password is None:
        password = _prompt_password("Enter decryption password (if required): ")
    entries = list_archive_contents(archive, password)
    print(f"Found {len(entries)} entries in {os.path.basename(archive)}.")
    for e in entries:
        print(f"{e.mode_string}\t{e.size}\t{e.name}")
    return True


def cmd_info(archive: str) -> bool:
    """Print the header fields; never needs a password."""
    version = detect_version(archive)
    header = describe_archive(archive)
    print(f"Archive: {archive}")
    print(f"  Format: v{int(version)}")
    if isinstance(header, HeaderV1):
        print(f"  Encrypted: {'yes' if header.encrypted else 'no'}")
    else:
        print("  Encrypted: yes")
        print(f"  Compression: {CompressionLevel.describe(header.compression_level)}")
    if header.argon_time:
        print(
            f"  Argon2id: time={header.argon_time} memory={header.argon_memory_kib} KiB "
            f"threads={header.argon_threads}"
        )
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="btxz",
        description="BTXZ secure archive tool",
        epilog="New archives use the v2 format (zip + Zstandard + AES-256-GCM); v1 archives remain readable.",
    )
    ap.add_argument("--version", action="version", version=f"btxz version {__version__}")
    ap.add_argument("--verbose", "-v", action="store_true", help="Log progress details to stderr")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create a new secure archive")
    ap_create.add_argument("output", help="Output archive path")
    ap_create.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_create.add_argument("--password", "-p", help="Encryption password (prompts if omitted)")
    ap_create.add_argument(
        "--level",
        "-l",
        choices=["fast", "default", "best"],
        default="default",
        help="Compression level (default: default)",
    )
    ap_create.add_argument("--kdf-time", type=int, help="Argon2id iterations (default 1)")
    ap_create.add_argument("--kdf-memory", type=int, help="Argon2id memory in KiB (default 65536)")
    ap_create.add_argument("--kdf-threads", type=int, help="Argon2id parallelism (default 4)")

    ap_extract = sub.add_parser("extract", help="Extract files from an archive")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("--outdir", "-o", default=".", help="Output directory")
    ap_extract.add_argument("--password", "-p", help="Archive password (prompts if omitted)")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("--password", "-p", help="Archive password (prompts if omitted)")

    ap_info = sub.add_parser("info", help="Show archive header information")
    ap_info.add_argument("archive", help="Archive path")

    args = ap.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.cmd == "create":
            kdf_params = None
            overrides = (args.kdf_time, args.kdf_memory, args.kdf_threads)
            if any(v is not None for v in overrides):
                defaults = KdfParams()
                kdf_params = KdfParams(
                    time_cost=defaults.time_cost if args.kdf_time is None else args.kdf_time,
                    memory_cost_kib=defaults.memory_cost_kib if args.kdf_memory is None else args.kdf_memory,
                    parallelism=defaults.parallelism if args.kdf_threads is None else args.kdf_threads,
                )
            cmd_create(args.output, args.inputs, password=args.password, level=args.level, kdf_params=kdf_params)
        elif args.cmd == "extract":
            ok = cmd_extract(args.archive, outdir=args.outdir, password=args.password)
            sys.exit(0 if ok else 1)
        elif args.cmd == "list":
            cmd_list(args.archive, password=args.password)
        elif args.cmd == "info":
            cmd_info(args.archive)
        else:
            raise RuntimeError("Unknown command")
    except DecryptionFailed:
        print("Error: Decryption failed. Please check if your password is correct.", file=sys.stderr)
        sys.exit(2)
    except PasswordRequired as e:
        print(f"Error: {e}. Provide --password.", file=sys.stderr)
        sys.exit(2)
    except BtxzError as e:
        print(f"Error: {e}", file=sys.stderr)
        for name in e.skipped:
            print(f"  skipped unsafe entry: {name}", file=sys.stderr)
        sys.exit(2)
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
