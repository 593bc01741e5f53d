"""Application configuration objects."""
from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the application."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_LOGGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Storage Logger",
        description="Human friendly name for the API.",
    )
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    data_dir: Path = Field(
        default=Path("./storage_logger_data"),
        description="Directory holding the key-value store and the image folder.",
    )
    store_filename: str = Field(
        default="store.json",
        description="Name of the JSON key-value store inside data_dir.",
    )
    image_dir_name: str = Field(
        default="ImageData",
        description="Subdirectory of data_dir where image blobs live.",
    )
    max_image_bytes: int = Field(
        default=150 * 1024,
        description="Ceiling for encoded image size; best effort above the quality floor.",
    )
    jpeg_start_quality: int = Field(default=100, description="First JPEG quality tried.")
    jpeg_quality_step: int = Field(default=10, description="Quality decrement per attempt.")
    jpeg_min_quality: int = Field(default=10, description="Lowest JPEG quality tried.")
    ad_threshold: int = Field(
        default=5,
        description="Number of saves after which the ad collaborator is triggered.",
    )
    log_level: str = Field(default="INFO", description="Minimum loguru level.")

    @field_validator("max_image_bytes", "ad_threshold")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("jpeg_start_quality", "jpeg_min_quality")
    @classmethod
    def _validate_quality(cls, value: int) -> int:
        if not 1 <= value <= 100:
            raise ValueError("JPEG quality must be within 1..100")
        return value

    @field_validator("jpeg_quality_step")
    @classmethod
    def _validate_step(cls, value: int) -> int:
        if value < 1:
            raise ValueError("quality step must be at least 1")
        return value

    @model_validator(mode="after")
    def _validate_quality_range(self) -> "Settings":
        if self.jpeg_min_quality > self.jpeg_start_quality:
            raise ValueError("jpeg_min_quality cannot exceed jpeg_start_quality")
        return self

    @property
    def store_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.store_filename

    @property
    def image_dir(self) -> Path:
        return Path(self.data_dir).expanduser() / self.image_dir_name


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Route loguru output to a single stderr sink at ``level``."""

    logger.remove()
    logger.add(sys.stderr, level=level.upper())


__all__ = ["Settings", "configure_logging", "get_settings"]
