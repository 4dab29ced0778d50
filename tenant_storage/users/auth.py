# tenant_storage/users/auth.py
"""
Username/password verification against a tenant's user store.

Token issuance belongs to the request-handling layer; this only decides
whether the credentials are valid and which roles the user holds.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from tenant_storage.monitoring.logger import log
from tenant_storage.users.factory import UserStoreFactory
from tenant_storage.users.user_store import is_safe_name


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    tenant_id: str
    roles: Tuple[str, ...]

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


async def verify_credentials(
    factory: UserStoreFactory,
    tenant_id: str,
    username: str,
    password: str,
) -> Optional[AuthenticatedUser]:
    """
    Check a username/password pair within a tenant.

    Returns:
        AuthenticatedUser on success, None for blank input, an unknown
        tenant or user, or a wrong password
    """
    if not username or not username.strip() or not password or not password.strip():
        return None

    if not is_safe_name(tenant_id) or not factory.tenant_exists(tenant_id):
        return None

    store = factory.create_user_store(tenant_id)
    user = await store.lookup(username)
    if user is None:
        return None

    if not factory.password_hasher.validate_password(password, user.password_hash, user.id):
        log("WARNING", f"Invalid password for user '{username}'", module="auth",
            tenant_id=tenant_id)
        return None

    return AuthenticatedUser(user_id=user.id, tenant_id=tenant_id, roles=user.roles)
