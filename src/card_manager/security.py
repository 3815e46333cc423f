"""Password handling primitives used by the local auth provider."""
from __future__ import annotations

from passlib.context import CryptContext

from .config import AppConfig


class SecureString:
    """A mutable bytearray backed string that can be wiped from memory."""

    __slots__ = ("_data",)

    def __init__(self, data: bytes | str):
        if isinstance(data, bytes):
            self._data = bytearray(data)
        else:
            self._data = bytearray(data.encode("utf-8"))

    def get(self) -> str:
        """Return the string representation using UTF-8 decoding."""

        return self._data.decode("utf-8")

    def get_bytes(self) -> bytes:
        return bytes(self._data)

    def copy(self) -> "SecureString":
        """Return a copy that owns its own backing buffer."""

        return SecureString(self.get_bytes())

    def clear(self) -> None:
        """Overwrite the backing buffer with zeros."""

        for index in range(len(self._data)):
            self._data[index] = 0
        self._data = bytearray()

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._data)

    def __enter__(self) -> "SecureString":  # pragma: no cover - trivial
        return self

    def __exit__(self, *_exc_info: object) -> None:  # pragma: no cover - trivial
        self.clear()

    def __del__(self):  # pragma: no cover - best effort cleanup
        try:
            self.clear()
        except Exception:
            pass


def as_secure(password: SecureString | str) -> SecureString:
    if isinstance(password, SecureString):
        return password.copy()
    return SecureString(password)


_SCHEMES = {"argon2id": "argon2", "pbkdf2": "pbkdf2_sha256"}


def password_context(config: AppConfig) -> CryptContext:
    """Return the passlib context used to hash and verify account passwords.

    New hashes use the scheme named by ``config.password_kdf``.  Hashes made
    with the other scheme still verify and are flagged for rehashing.
    """

    name = config.password_kdf.strip().lower()
    if name not in _SCHEMES:
        raise ValueError(f"Unsupported KDF algorithm: {config.password_kdf}")
    return CryptContext(
        schemes=list(_SCHEMES.values()),
        default=_SCHEMES[name],
        deprecated=[scheme for scheme in _SCHEMES.values() if scheme != _SCHEMES[name]],
        argon2__type="id",
        argon2__rounds=config.argon2_time_cost,
        argon2__memory_cost=config.argon2_memory_cost_kib,
        argon2__parallelism=config.argon2_parallelism,
        argon2__salt_size=config.salt_size_bytes,
        argon2__digest_size=config.hash_size_bytes,
        pbkdf2_sha256__rounds=config.pbkdf2_iterations,
        pbkdf2_sha256__salt_size=config.salt_size_bytes,
    )


def plaintext(password: SecureString | str) -> str:
    if isinstance(password, SecureString):
        return password.get()
    return password


__all__ = ["SecureString", "as_secure", "password_context", "plaintext"]
