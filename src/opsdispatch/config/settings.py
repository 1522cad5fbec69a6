"""Central settings: loads from ~/.opsdispatch/config.json + environment variables."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from opsdispatch.config import constants
from opsdispatch.config.constants import OPSDISPATCH_HOME
from opsdispatch.config.models import (
    HttpConfig,
    SchedulerConfig,
    ServerConfig,
    StorageConfig,
)


class Settings(BaseSettings):
    """All opsdispatch configuration in one place.

    Priority (highest → lowest):
      1. Environment variables (OPSDISPATCH_ prefix, ``__`` for nesting)
      2. .env file
      3. ~/.opsdispatch/config.json
      4. Defaults defined here
    """

    model_config = SettingsConfigDict(
        env_prefix="OPSDISPATCH_",
        env_nested_delimiter="__",
        env_file=(".env", str(OPSDISPATCH_HOME / ".env")),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Sub-configs ---
    server: ServerConfig = Field(default_factory=ServerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    # --- Top-level settings ---
    log_level: str = "INFO"

    @model_validator(mode="before")
    @classmethod
    def load_config_file(cls, values: dict) -> dict:
        """Merge config.json values as defaults (env vars still override)."""
        config_file = constants.CONFIG_FILE
        if config_file.exists():
            try:
                file_data = json.loads(config_file.read_text(encoding="utf-8"))
                # File values are the base; explicit values override
                values = {**file_data, **{k: v for k, v in values.items() if v is not None}}
            except (json.JSONDecodeError, OSError):
                pass
        return values

    @property
    def data_dir(self) -> Path:
        """Resolved data directory for the JSON stores."""
        return Path(self.storage.data_dir).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
