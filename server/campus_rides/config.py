"""
Configuration and settings for the maintenance toolkit.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MONGODB_URI = "mongodb://localhost:27017/iitd-db"
FALLBACK_USER_PASSWORD = "ChangeMeNow123!"
DEFAULT_HASH_COST = 10


class Settings(BaseSettings):
    """Environment-backed settings for scripts and the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")

    # Document store
    mongodb_uri: str = Field(default=DEFAULT_MONGODB_URI)
    mongodb_database: str = Field(default="iitd-db")

    # Password backfill
    default_user_password: Optional[str] = Field(default=None)
    bcrypt_salt_rounds: int = Field(default=DEFAULT_HASH_COST, ge=4, le=31)

    # Admin bootstrap
    admin_email: str = Field(default="sudo.sde@gmail.com")
    admin_password: str = Field(default="Admin123!")
    admin_name: str = Field(default="System Administrator")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="RIDES_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


@dataclass(frozen=True)
class MaintenanceConfig:
    """
    Explicit configuration handed to each maintenance procedure.

    Procedures never read the environment themselves; build one of these
    with `from_settings` (or directly in tests) and pass it in.
    """

    connection_string: str = DEFAULT_MONGODB_URI
    default_secret: Optional[str] = None
    hash_cost: int = DEFAULT_HASH_COST
    database_name: str = "iitd-db"

    @classmethod
    def from_settings(cls, settings: Settings) -> "MaintenanceConfig":
        return cls(
            connection_string=settings.mongodb_uri,
            default_secret=settings.default_user_password or None,
            hash_cost=settings.bcrypt_salt_rounds,
            database_name=settings.mongodb_database,
        )

    @property
    def uses_fallback_secret(self) -> bool:
        return not self.default_secret

    @property
    def secret(self) -> str:
        return self.default_secret or FALLBACK_USER_PASSWORD
