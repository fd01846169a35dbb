"""
Configuration for RallyBot.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration loaded from the environment."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Slack
    slack_signing_secret: str = Field(..., description="Slack app signing secret")
    slack_bot_token: str = Field(default="", description="Bot user OAuth token")
    signature_version: str = Field(default="v0", description="Slack signature version prefix")
    signature_max_age: Optional[int] = Field(
        default=None,
        description="Reject requests whose timestamp is older than this many seconds",
    )

    # Storage
    store_backend: Literal["mongo", "memory"] = Field(default="mongo")
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    database_name: str = Field(default="rallybot")

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False)

    # HTTP
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)


class DatabaseConfig(BaseSettings):
    """Database collection settings."""

    model_config = SettingsConfigDict(env_prefix="DB_", env_file=".env", extra="ignore")

    challenges_collection: str = "challenges"
    scores_collection: str = "scores"
    connection_timeout: int = 5
    enable_indexes: bool = True


@lru_cache()
def get_config() -> Config:
    """Get the application configuration."""
    return Config()


@lru_cache()
def get_db_config() -> DatabaseConfig:
    """Get the database configuration."""
    return DatabaseConfig()
