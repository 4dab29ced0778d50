# tenant_storage/users/factory.py
"""
Storage root resolution and per-tenant UserStore construction.

Tenants are not modelled beyond their directory: a tenant exists when
``<data path>/<tenant>`` exists.
"""
import os
from typing import Optional

from tenant_storage.config import settings
from tenant_storage.monitoring.logger import log
from tenant_storage.users.passwords import PasslibPasswordHasher, PasswordHasher
from tenant_storage.users.storage_limit import parse_storage_limit
from tenant_storage.users.user_store import UserStore, is_safe_name

DATA_DIRNAME = "data"


class BasePathProvider:
    """
    Resolves the storage root from settings.

    ``root_path`` is the absolute BASE_STORAGE_PATH, ``data_path`` is the
    ``data`` folder below it where tenant directories live.
    """

    def __init__(self, base_storage_path: Optional[str] = None, ensure_exists: bool = True):
        self._base_storage_path = base_storage_path or settings.BASE_STORAGE_PATH
        if ensure_exists:
            self.ensure_folders_exist()

    @property
    def root_path(self) -> str:
        return os.path.abspath(self._base_storage_path)

    @property
    def data_path(self) -> str:
        return os.path.join(self.root_path, DATA_DIRNAME)

    def ensure_folders_exist(self) -> None:
        """Create the root and data folders, logging and re-raising failures."""
        for label, path in (("Base storage", self.root_path), ("Data", self.data_path)):
            if os.path.isdir(path):
                continue
            try:
                os.makedirs(path, exist_ok=True)
                log("INFO", f"{label} folder created at: {path}", module="factory")
            except OSError as exc:
                log("ERROR", f"Error creating {label.lower()} folder at {path}: {exc}",
                    module="factory")
                raise


class UserStoreFactory:
    """
    Creates tenant-scoped UserStore instances sharing one password hasher.

    Example:
        factory = UserStoreFactory()
        store = factory.create_user_store("acme")
        user = await store.lookup("alice")
    """

    def __init__(
        self,
        base_path_provider: Optional[BasePathProvider] = None,
        password_hasher: Optional[PasswordHasher] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.base_path_provider = base_path_provider or BasePathProvider()
        self.password_hasher = password_hasher or PasslibPasswordHasher()
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.USER_LOCK_TIMEOUT

        self.default_storage_limit_bytes = parse_storage_limit(settings.DEFAULT_STORAGE_LIMIT)
        if self.default_storage_limit_bytes < 0:
            raise ValueError(f"Invalid DEFAULT_STORAGE_LIMIT: {settings.DEFAULT_STORAGE_LIMIT!r}")

        log("INFO", f"UserStoreFactory initialized with base path: {self.base_path_provider.root_path}",
            module="factory")

    def create_user_store(self, tenant_id: str) -> UserStore:
        """
        Get the user store for a tenant.

        Raises:
            ValueError: If tenant_id is blank or not a single path segment
        """
        return UserStore(
            self.base_path_provider.data_path,
            tenant_id,
            self.password_hasher,
            lock_timeout=self.lock_timeout,
            default_storage_limit_bytes=self.default_storage_limit_bytes,
        )

    def tenant_path(self, tenant_id: str) -> str:
        return os.path.join(self.base_path_provider.data_path, tenant_id)

    def tenant_exists(self, tenant_id: str) -> bool:
        if not is_safe_name(tenant_id):
            return False
        return os.path.isdir(self.tenant_path(tenant_id))

    def create_tenant(self, tenant_id: str) -> bool:
        """
        Create a tenant directory.

        Returns:
            True if created; False for a blank/unsafe name, an existing
            tenant, or a filesystem error
        """
        if not is_safe_name(tenant_id):
            log("WARNING", f"Invalid tenant name: {tenant_id!r}", module="factory")
            return False

        tenant_path = self.tenant_path(tenant_id)
        try:
            os.makedirs(self.base_path_provider.data_path, exist_ok=True)
            os.mkdir(tenant_path)
        except FileExistsError:
            log("WARNING", f"Tenant '{tenant_id}' already exists", module="factory",
                tenant_id=tenant_id)
            return False
        except OSError as exc:
            log("ERROR", f"Error creating tenant '{tenant_id}': {exc}", module="factory",
                tenant_id=tenant_id)
            return False

        log("INFO", f"Created tenant '{tenant_id}' at: {tenant_path}", module="factory",
            tenant_id=tenant_id)
        return True
