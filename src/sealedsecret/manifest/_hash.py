"""Public key hashing for key-rotation detection."""

import hashlib
from typing import Protocol


class PublicNumbers(Protocol):
    """RSA public numbers."""

    @property
    def n(self) -> int: ...

    @property
    def e(self) -> int: ...


class PublicKey(Protocol):
    """An RSA public key, as returned by the controller's key resolver."""

    def public_numbers(self) -> PublicNumbers: ...


def hash_public_key(key: PublicKey) -> str:
    """Return the SHA-1 hex digest of the key's decimal modulus and exponent.

    The digest is stored next to published secrets so that a later read
    notices when the controller key has changed.
    """
    numbers = key.public_numbers()
    digest = hashlib.sha1(f"{numbers.n}{numbers.e}".encode())  # noqa: S324
    return digest.hexdigest()
