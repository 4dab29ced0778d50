# tenant_storage/users/models.py
"""
User record persisted as ``user.json``.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tenant_storage.users.storage_limit import DEFAULT_STORAGE_LIMIT_BYTES


class User(BaseModel):
    """A user of one tenant. ``id`` is the username and unique within the tenant.

    Serialized with camelCase keys: id, passwordHash, isAdmin, storageLimitBytes.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    password_hash: str = Field(min_length=1)
    is_admin: bool = False
    storage_limit_bytes: int = Field(DEFAULT_STORAGE_LIMIT_BYTES, ge=0)

    @property
    def roles(self) -> tuple:
        return ("admin", "user") if self.is_admin else ("user",)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
