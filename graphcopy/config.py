"""
Configuration management for graphcopy.

Loads and validates configuration from graphcopy.toml files and GRAPHCOPY_*
environment variables using Pydantic.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = "graphcopy.toml"


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    source_url: str = Field(default="", description="PostgreSQL URL of the source database")
    destination_url: str = Field(
        default="", description="PostgreSQL URL of the destination database"
    )
    permissions_url: str = Field(
        default="", description="PostgreSQL URL of the permissions database"
    )
    source_schema: str = Field(default="public", description="Schema to copy from")
    destination_schema: str = Field(default="", description="Schema to copy into")
    connect_timeout: float = Field(
        default=60.0, gt=0, description="Seconds to keep retrying a connection"
    )
    retry_interval: float = Field(
        default=2.0, gt=0, description="Seconds between connection attempts"
    )


class CopyConfig(BaseModel):
    """Schema copy configuration."""

    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rows per INSERT statement (default: 10000, capped by bind parameter limit)",
    )
    max_bind_parameters: int = Field(
        default=65535, ge=1, description="Destination limit on bind parameters per statement"
    )
    excluded_tables: list[str] = Field(
        default=["version"],
        description="Tables kept in the copy order but not copied",
    )
    placeholder_format: Literal["auto", "text", "binary"] = Field(
        default="auto", description="Parameter placeholder format"
    )
    itersize: int = Field(default=2000, ge=1, description="Source rows fetched per round-trip")
    ignore_self_references: bool = Field(
        default=False,
        description="Allow self-referencing foreign keys instead of treating them as cycles",
    )


class PermissionsConfig(BaseModel):
    """Permissions sync configuration."""

    source_schema: str = Field(default="public", description="Schema of the permissions tables")
    lock_tables: list[str] = Field(
        default=["subjects", "resource_types", "resources", "permission_levels", "permissions"],
        description="Tables locked in EXCLUSIVE mode during the sync",
    )
    entity_table: str = Field(default="subjects", description="Table synced to the destination")
    columns: list[str] = Field(
        default=["id", "subject_id", "subject_type"], description="Columns synced"
    )
    conflict_key: list[str] = Field(default=["id"], description="Upsert conflict key")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log record format",
    )


class Config(BaseSettings):
    """Main configuration for graphcopy."""

    model_config = SettingsConfigDict(env_prefix="GRAPHCOPY_", env_nested_delimiter="__")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    engine: CopyConfig = Field(default_factory=CopyConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> Config:
        """
        Load configuration from TOML file.

        Args:
            path: Path to graphcopy.toml file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> Config:
        """
        Find and load configuration from graphcopy.toml.

        Searches for graphcopy.toml starting from start_dir and walking up
        parent directories until found or reaching filesystem root.

        Args:
            start_dir: Directory to start search (defaults to current directory)

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If no config file found
        """
        if start_dir is None:
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()

        # Walk up directory tree
        while True:
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return cls.from_toml(config_path)

            # Check if we've reached filesystem root
            parent = current.parent
            if parent == current:
                break
            current = parent

        raise FileNotFoundError(
            f"No {CONFIG_FILENAME} found in {start_dir} or parent directories."
        )
