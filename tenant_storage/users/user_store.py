# tenant_storage/users/user_store.py
"""
Directory-backed user store for one tenant.

Layout:
    root/<tenant>/<username>/user.json
    root/<tenant>/<username>/files/

Paths here are built internally from validated names, so the store works on
the filesystem directly instead of going through LocalFileStore.
"""
import asyncio
import functools
import os
from enum import Enum
from typing import List, Optional

import aiofiles
import aiofiles.os
from filelock import FileLock, Timeout

from tenant_storage.users.models import User
from tenant_storage.users.passwords import PasswordHasher
from tenant_storage.users.storage_limit import DEFAULT_STORAGE_LIMIT_BYTES
from tenant_storage.monitoring.logger import log

USER_METADATA_FILENAME = "user.json"
USER_FILES_DIRNAME = "files"
_LOCK_FILENAME = ".users.lock"


class CreateUserOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    INVALID = "invalid"
    FAILED = "failed"


def is_safe_name(name: Optional[str]) -> bool:
    """True when ``name`` can be used as a single directory name."""
    if name is None or not name.strip():
        return False
    if name in (".", "..") or name != name.strip():
        return False
    return not any(ch in name for ch in ("/", "\\", "\x00"))


class UserStore:
    """
    User records of a single tenant.

    Args:
        root: Storage root holding one directory per tenant
        tenant_id: Tenant whose users this store manages
        password_hasher: Hashes passwords with the username as salt
        lock_timeout: Seconds to wait for the tenant's user-creation lock
        default_storage_limit_bytes: Quota given to users created without one
    """

    def __init__(
        self,
        root: str,
        tenant_id: str,
        password_hasher: PasswordHasher,
        lock_timeout: float = 10.0,
        default_storage_limit_bytes: int = DEFAULT_STORAGE_LIMIT_BYTES,
    ):
        if not is_safe_name(tenant_id):
            raise ValueError(f"Invalid tenant id: {tenant_id!r}")

        self.root = os.path.abspath(root)
        self.tenant_id = tenant_id
        self.password_hasher = password_hasher
        self.lock_timeout = lock_timeout
        self.default_storage_limit_bytes = default_storage_limit_bytes

        # Ensure the root and tenant directories exist
        os.makedirs(self.tenant_path, exist_ok=True)

    @property
    def tenant_path(self) -> str:
        return os.path.join(self.root, self.tenant_id)

    def user_path(self, username: str) -> str:
        return os.path.join(self.tenant_path, username)

    def files_path(self, username: str) -> str:
        return os.path.join(self.user_path(username), USER_FILES_DIRNAME)

    def metadata_path(self, username: str) -> str:
        return os.path.join(self.user_path(username), USER_METADATA_FILENAME)

    async def lookup(self, username: str) -> Optional[User]:
        """
        Get a user by name.

        Returns:
            The User, or None when the name is blank, the user directory or
            metadata file is missing, or the metadata can't be read or parsed
        """
        if not is_safe_name(username):
            return None

        if not await aiofiles.os.path.isdir(self.user_path(username)):
            return None

        metadata_path = self.metadata_path(username)
        if not await aiofiles.os.path.isfile(metadata_path):
            return None

        try:
            async with aiofiles.open(metadata_path, "r", encoding="utf-8") as f:
                raw = await f.read()
            user = User.model_validate_json(raw)
        except (OSError, ValueError) as exc:
            # Unreadable metadata means the user does not exist
            log("WARNING", f"Unreadable user metadata for '{username}': {exc}",
                module="user_store", tenant_id=self.tenant_id)
            return None

        if user.id != username:
            log("WARNING", f"User metadata id '{user.id}' does not match directory '{username}'",
                module="user_store", tenant_id=self.tenant_id)
            return None

        return user

    async def create(
        self,
        username: str,
        password: str,
        is_admin: bool = False,
        storage_limit_bytes: Optional[int] = None,
    ) -> bool:
        """
        Create a user in this tenant.

        Returns:
            True if the user was created, False otherwise (blank input,
            existing user, or any I/O failure)
        """
        outcome = await self.try_create(username, password, is_admin, storage_limit_bytes)
        return outcome is CreateUserOutcome.CREATED

    async def try_create(
        self,
        username: str,
        password: str,
        is_admin: bool = False,
        storage_limit_bytes: Optional[int] = None,
    ) -> CreateUserOutcome:
        """
        Create a user, reporting why creation did not happen.

        The user directory is claimed with an exclusive mkdir while holding the
        tenant's FileLock, so two creators of the same name cannot both succeed.
        Partially created directories are not rolled back on failure.
        """
        if not is_safe_name(username) or not password or not password.strip():
            return CreateUserOutcome.INVALID

        if storage_limit_bytes is None:
            storage_limit_bytes = self.default_storage_limit_bytes

        if storage_limit_bytes < 0:
            return CreateUserOutcome.INVALID

        loop = asyncio.get_running_loop()
        try:
            # FileLock blocks, so the locked section runs off the event loop
            outcome = await loop.run_in_executor(
                None,
                functools.partial(self._create_locked, username, password, is_admin, storage_limit_bytes),
            )

        except Timeout:
            log("ERROR", f"Failed to acquire user lock within {self.lock_timeout}s",
                module="user_store", tenant_id=self.tenant_id)
            return CreateUserOutcome.FAILED

        except Exception as exc:
            log("ERROR", f"Create user error for '{username}': {exc}",
                module="user_store", tenant_id=self.tenant_id, exc_info=True)
            return CreateUserOutcome.FAILED

        if outcome is CreateUserOutcome.ALREADY_EXISTS:
            log("WARNING", f"User '{username}' already exists",
                module="user_store", tenant_id=self.tenant_id)
        else:
            log("INFO", f"User '{username}' created (admin={is_admin})",
                module="user_store", tenant_id=self.tenant_id)
        return outcome

    def _create_locked(
        self,
        username: str,
        password: str,
        is_admin: bool,
        storage_limit_bytes: int,
    ) -> CreateUserOutcome:
        lock = FileLock(os.path.join(self.tenant_path, _LOCK_FILENAME), timeout=self.lock_timeout)

        with lock:
            try:
                os.mkdir(self.user_path(username))
            except FileExistsError:
                return CreateUserOutcome.ALREADY_EXISTS

            os.makedirs(self.files_path(username), exist_ok=True)

            user = User(
                id=username,
                password_hash=self.password_hasher.hash_password(password, username),
                is_admin=is_admin,
                storage_limit_bytes=storage_limit_bytes,
            )

            with open(self.metadata_path(username), "w", encoding="utf-8") as f:
                f.write(user.to_json())

        return CreateUserOutcome.CREATED

    async def list_users(self) -> List[str]:
        """Names of users in this tenant that have a metadata file."""
        if not await aiofiles.os.path.isdir(self.tenant_path):
            return []

        entries = await aiofiles.os.scandir(self.tenant_path)
        with entries:
            names = [
                entry.name for entry in entries
                if entry.is_dir() and os.path.isfile(os.path.join(entry.path, USER_METADATA_FILENAME))
            ]
        return sorted(names)

    def __repr__(self) -> str:
        return f"<UserStore tenant={self.tenant_id!r} root={self.root!r}>"
