"""Environment configuration for the synteny API server."""
import json
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemas import AdapterConfig


class Settings(BaseSettings):
    """Application settings, read from SYNTENY_* environment variables.

    Optional:
      - SYNTENY_CONFIG_FILE: JSON adapter configuration (camelCase keys)
      - SYNTENY_URL / SYNTENY_ASSEMBLY_NAMES: override the file's values
    """

    model_config = SettingsConfigDict(env_prefix="SYNTENY_", env_file=".env", extra="ignore")

    url: Optional[str] = None
    assembly_names: Optional[list[str]] = None
    config_file: Optional[Path] = None

    log_level: str = Field(default="INFO", description="Root log level for the API server")

    # API prefix (kept constant for reverse-proxy routing)
    api_prefix: str = "/api"


def load_adapter_config(settings: Settings) -> AdapterConfig:
    """Read the JSON adapter configuration, if any, and overlay environment values."""
    data = {}
    if settings.config_file is not None:
        with open(settings.config_file) as f:
            data = json.load(f)

    if settings.url is not None:
        data["url"] = settings.url
    if settings.assembly_names is not None:
        data["assemblyNames"] = settings.assembly_names

    return AdapterConfig(**data)
