# tenant_storage/users/passwords.py
"""
Password hashing used by the user store.

The store only depends on the ``PasswordHasher`` protocol; the username is
passed as the salt so a hash only validates for the user it was made for.
"""
from typing import Protocol, runtime_checkable

from passlib.context import CryptContext


@runtime_checkable
class PasswordHasher(Protocol):
    def hash_password(self, password: str, salt: str) -> str:
        ...

    def validate_password(self, password: str, password_hash: str, salt: str) -> bool:
        ...


class PasslibPasswordHasher:
    """PasswordHasher backed by a passlib CryptContext (pbkdf2_sha256 by default)."""

    def __init__(self, context: CryptContext = None):
        self.context = context or CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    @staticmethod
    def _secret(password: str, salt: str) -> str:
        return f"{salt}:{password}"

    def hash_password(self, password: str, salt: str) -> str:
        return self.context.hash(self._secret(password, salt))

    def validate_password(self, password: str, password_hash: str, salt: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return self.context.verify(self._secret(password, salt), password_hash)
        except ValueError:
            # Malformed or unknown hash format
            return False
