from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MAKE_LIVE_", env_file=".env")

    # Where the YAML config lives and which checkout the notebooks belong to
    config_path: Path = Field(default=Path("config/config.yaml"))
    root_dir: Path = Field(default=Path("."))

    log_level: str = "INFO"


settings = Settings()
