"""
Configuration management using Pydantic Settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    # Root under which tenant and user folders are laid out
    BASE_STORAGE_PATH: str = "storage"
    LOG_LEVEL: str = "INFO"
    # Prefix containment check in PathResolver; set False on case-insensitive volumes
    PATH_CASE_SENSITIVE: bool = True
    # Accepts the same tokens as the storage limit parser: "1gb", "500mb", "1024"
    DEFAULT_STORAGE_LIMIT: str = "1gb"
    USER_LOCK_TIMEOUT: float = Field(10.0, gt=0)
    STREAM_CHUNK_SIZE: int = Field(8192, gt=0)

settings = Settings()
