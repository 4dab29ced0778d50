"""
Per-tenant user records stored as directories under the storage root:

    root/<tenant>/<username>/user.json
    root/<tenant>/<username>/files/
"""

from tenant_storage.users.models import User
from tenant_storage.users.passwords import PasswordHasher, PasslibPasswordHasher
from tenant_storage.users.storage_limit import (
    DEFAULT_STORAGE_LIMIT_BYTES,
    INVALID_STORAGE_LIMIT,
    format_bytes,
    parse_storage_limit,
)
from tenant_storage.users.user_store import CreateUserOutcome, UserStore
from tenant_storage.users.factory import BasePathProvider, UserStoreFactory
from tenant_storage.users.auth import AuthenticatedUser, verify_credentials

__all__ = [
    "User",
    "PasswordHasher",
    "PasslibPasswordHasher",
    "DEFAULT_STORAGE_LIMIT_BYTES",
    "INVALID_STORAGE_LIMIT",
    "format_bytes",
    "parse_storage_limit",
    "CreateUserOutcome",
    "UserStore",
    "BasePathProvider",
    "UserStoreFactory",
    "AuthenticatedUser",
    "verify_credentials",
]
