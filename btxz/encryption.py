from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Union

try:  # pragma: no cover - availability depends on environment
    from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash  # type: ignore
    from argon2.exceptions import HashingError as _ArgonHashingError  # type: ignore
    _HAS_ARGON2 = True
except ImportError:  # pragma: no cover
    _ArgonType = None  # type: ignore
    _argon_hash = None  # type: ignore
    _ArgonHashingError = RuntimeError  # type: ignore
    _HAS_ARGON2 = False

try:  # pragma: no cover - optional dependency at runtime
    from Cryptodome.Cipher import AES  # type: ignore
    _HAS_CRYPTODOME = True
except ImportError:  # pragma: no cover
    AES = None  # type: ignore
    _HAS_CRYPTODOME = False

from .constants import (
    SALT_SIZE,
    NONCE_SIZE,
    KEY_SIZE,
    TAG_SIZE,
    ARGON_TIME_COST,
    ARGON_MEMORY_COST_KIB,
    ARGON_PARALLELISM,
    MAX_MEMORY_COST_KIB,
)
from .errors import DecryptionFailed, InvalidFormat


_HAS_CRYPTO = bool(_HAS_ARGON2 and _HAS_CRYPTODOME)

Password = Union[str, bytes]


@dataclass(frozen=True)
class KdfParams:
    time_cost: int = ARGON_TIME_COST
    memory_cost_kib: int = ARGON_MEMORY_COST_KIB
    parallelism: int = ARGON_PARALLELISM

    def validate(self) -> None:
        """Reject cost parameters Argon2id cannot run or that exceed the safety bound.

        Header fields are attacker-controlled, so this runs before every
        derivation.
        """
        if self.time_cost < 1:
            raise InvalidFormat(f"invalid Argon2 time cost: {self.time_cost}")
        if self.parallelism < 1:
            raise InvalidFormat(f"invalid Argon2 parallelism: {self.parallelism}")
        if self.memory_cost_kib < 8 * self.parallelism:
            raise InvalidFormat(f"invalid Argon2 memory cost: {self.memory_cost_kib} KiB")
        if self.memory_cost_kib > MAX_MEMORY_COST_KIB:
            raise InvalidFormat("Argon2 memory cost exceeds safety bound")


def _ensure_backend() -> None:
    if not _HAS_CRYPTO:
        raise RuntimeError("argon2-cffi and PyCryptodomex are required for encryption support")


def random_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def random_nonce() -> bytes:
    return os.urandom(NONCE_SIZE)


def _password_bytes(password: Password) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    return bytes(password)


def derive_key(password: Password, salt: bytes, params: KdfParams) -> bytearray:
    """Derive the 32-byte AES-256 key with Argon2id.

    Deterministic for identical inputs. The result is a ``bytearray`` so the
    caller can :func:`wipe` it once the operation is done.
    """
    _ensure_backend()
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes")
    params.validate()
    try:
        raw = _argon_hash(
            _password_bytes(password),
            salt,
            time_cost=params.time_cost,
            memory_cost=params.memory_cost_kib,
            parallelism=params.parallelism,
            hash_len=KEY_SIZE,
            type=_ArgonType.ID,
        )
    except _ArgonHashingError as exc:
        raise InvalidFormat(f"key derivation rejected header parameters: {exc}") from exc
    return bytearray(raw)


def wipe(key: bytearray) -> None:
    """Best-effort overwrite of key material held in a mutable buffer."""
    for i in range(len(key)):
        key[i] = 0


def seal_payload(key: bytearray, nonce: bytes, plaintext: bytes) -> bytes:
    """AES-256-GCM over the whole payload; returns ciphertext || tag."""
    _ensure_backend()
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes")
    cipher = AES.new(key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)
    return ciphertext + tag


def open_payload(key: bytearray, nonce: bytes, payload: bytes) -> bytes:
    """Verify and decrypt ``payload`` (ciphertext || tag).

    Wrong keys and tampered bytes are reported identically.
    """
    _ensure_backend()
    if len(payload) < TAG_SIZE:
        raise DecryptionFailed("decryption failed: incorrect password or tampered archive")
    cipher = AES.new(key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
    try:
        return cipher.decrypt_and_verify(payload[:-TAG_SIZE], payload[-TAG_SIZE:])
    except ValueError as exc:
        raise DecryptionFailed("decryption failed: incorrect password or tampered archive") from exc
