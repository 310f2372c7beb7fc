# Magic and versions
MAGIC_SIGNATURE = b"BTXZ"  # 4 bytes, every format version
PEEK_SIZE = 6              # signature + u16 version

FORMAT_V1 = 1
FORMAT_V2 = 2
LATEST_FORMAT = FORMAT_V2

# v1 protection modes (the names-encrypted flag always mirrors these)
MODE_UNPROTECTED = 0x00
MODE_ENCRYPTED = 0x01

NAMES_UNENCRYPTED = 0x00
NAMES_ENCRYPTED = 0x01

# Crypto sizes
SALT_SIZE = 16
NONCE_SIZE = 12   # AES-GCM standard nonce
KEY_SIZE = 32     # AES-256
TAG_SIZE = 16

# Recommended Argon2id parameters for new archives. Readers always use the
# values stored in the header, never these.
ARGON_TIME_COST = 1
ARGON_MEMORY_COST_KIB = 64 * 1024  # 64 MiB
ARGON_PARALLELISM = 4

# Safety bound for header-supplied memory cost (4 GiB)
MAX_MEMORY_COST_KIB = 4 * 1024 * 1024

# v2 compression level codes
LEVEL_FAST = 0x01
LEVEL_DEFAULT = 0x02
LEVEL_BEST = 0x03

# Zstandard level per v2 code
ZSTD_LEVELS = {
    LEVEL_FAST: 1,
    LEVEL_DEFAULT: 3,
    LEVEL_BEST: 11,
}

# v1 xz preset
XZ_PRESET = 6

COPY_BUFSIZE = 1024 * 1024
DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644
