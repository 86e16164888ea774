"""Configuration management for the Filedrop server."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .storage.models import StorageConfig


class Settings(BaseSettings):
    """Centralised runtime configuration for the server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
    )

    # General
    project_root: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parents[2],
        description="Root directory of the project repository.",
    )
    storage_root: Path = Field(
        default=Path("uploads"),
        description="Directory holding every stored file (created on first write).",
    )
    public_prefix: str = Field(
        default="/uploads",
        description="URL prefix under which stored files are served directly.",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    log_level: str = Field(default="info")

    # Archives
    compress_level: int = Field(default=9, ge=0, le=9)
    temp_prefix: str = Field(default="temp-")

    @field_validator("storage_root", mode="before")
    @classmethod
    def _normalise_storage_root(cls, value: Path | str, info: ValidationInfo) -> Path:
        project_root: Path = info.data.get("project_root", Path.cwd())
        candidate = Path(value) if not isinstance(value, Path) else value
        if candidate.is_absolute():
            return candidate
        return project_root / candidate

    @field_validator("public_prefix")
    @classmethod
    def _normalise_prefix(cls, value: str) -> str:
        return "/" + value.strip("/")

    @property
    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            root=self.storage_root,
            compress_level=self.compress_level,
            temp_prefix=self.temp_prefix,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
