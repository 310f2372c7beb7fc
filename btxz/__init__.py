"""
BTXZ: single-file secure archives.

An archive is a fixed little-endian header followed by one opaque payload:

- v2 (written by default): zip container with stored entries, compressed as a
  whole with Zstandard, sealed with AES-256-GCM under an Argon2id key.
- v1 (read support, legacy builder kept): tar stream compressed with xz,
  optionally sealed the same way.

The header pins the format version and every key-derivation parameter, so
archives written by older releases stay readable. Extraction skips entries
whose paths would escape the destination directory and reports them instead
of failing.
"""

__version__ = "2.0.0"

__all__ = [
    "constants",
    "errors",
    "header",
    "encryption",
    "compression",
    "core",
    "format_v1",
    "format_v2",
]

# Programmatic API: btxz.core.create_archive / extract_archive /
# list_archive_contents. The command-line shell lives in btxz.cli.
