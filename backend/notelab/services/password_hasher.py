"""
Credential hashing.

Two schemes are supported:

- ``sha256``: ``hex(salt) + ":" + hex(sha256(salt || utf8(password)))`` with a
  16-byte random salt. This is the storage format of existing Note.Lab
  accounts.
- ``bcrypt``: native bcrypt digests (``$2b$...``), the default for new hashes.

Verification dispatches on the stored format, so accounts hashed under the
legacy scheme keep working and are upgraded on their next login.
"""
import hashlib
import hmac
import logging
import secrets
from typing import Optional

import bcrypt

logger = logging.getLogger(__name__)

SALT_BYTES = 16
SEPARATOR = ":"

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class Sha256PasswordHasher:
    """Salted single-round SHA-256 in ``salt:hash`` form"""

    scheme = "sha256"

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(SALT_BYTES)
        digest = hashlib.sha256(salt + password.encode("utf-8")).digest()
        return f"{salt.hex()}{SEPARATOR}{digest.hex()}"

    def verify(self, password: str, stored: str) -> bool:
        """Return False for any malformed digest instead of raising."""
        if not isinstance(stored, str) or SEPARATOR not in stored:
            return False

        salt_hex, digest_hex = stored.split(SEPARATOR, 1)
        if not salt_hex or not digest_hex:
            return False

        try:
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(digest_hex)
        except ValueError:
            return False

        actual = hashlib.sha256(salt + password.encode("utf-8")).digest()
        return hmac.compare_digest(actual, expected)

    @staticmethod
    def identify(stored: str) -> bool:
        return isinstance(stored, str) and SEPARATOR in stored and not stored.startswith("$")


class BcryptPasswordHasher:
    """bcrypt with a configurable cost factor"""

    scheme = "bcrypt"

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        hashed = bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, stored: str) -> bool:
        if not self.identify(stored):
            return False
        try:
            return bcrypt.checkpw(self._encode(password), stored.encode("utf-8"))
        except ValueError:
            logger.warning("Malformed bcrypt digest encountered during verification")
            return False

    @staticmethod
    def identify(stored: str) -> bool:
        return isinstance(stored, str) and stored.startswith(("$2a$", "$2b$", "$2y$"))


class PasswordHasher:
    """Hashes with the configured scheme; verifies digests of either scheme."""

    def __init__(self, scheme: str = "bcrypt", bcrypt_rounds: int = 12):
        self.sha256 = Sha256PasswordHasher()
        self.bcrypt = BcryptPasswordHasher(rounds=bcrypt_rounds)
        if scheme == "sha256":
            self.default = self.sha256
        elif scheme == "bcrypt":
            self.default = self.bcrypt
        else:
            raise ValueError(f"Unknown password hash scheme: {scheme}")
        self._dummy_digest: Optional[str] = None

    @property
    def scheme(self) -> str:
        return self.default.scheme

    def hash(self, password: str) -> str:
        return self.default.hash(password)

    def verify(self, password: str, stored: str) -> bool:
        if BcryptPasswordHasher.identify(stored):
            return self.bcrypt.verify(password, stored)
        return self.sha256.verify(password, stored)

    def dummy_verify(self, password: str) -> bool:
        """
        Verify against a throwaway digest of the default scheme.

        Used when there is no account to check, so unknown emails cost as
        much as wrong passwords. Always returns False.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash(secrets.token_urlsafe(16))
        self.verify(password, self._dummy_digest)
        return False

    def needs_rehash(self, stored: str) -> bool:
        """True when the stored digest was produced by a different scheme."""
        if self.default is self.bcrypt:
            return not BcryptPasswordHasher.identify(stored)
        return not Sha256PasswordHasher.identify(stored)


def build_password_hasher(settings) -> PasswordHasher:
    """Build the hasher described by application settings"""
    return PasswordHasher(
        scheme=settings.password_hash_scheme,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
