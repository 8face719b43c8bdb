"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cbnotify.errors import ConfigError


# ---------------------------------------------------------------------------
# Service settings
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8080
    path: str = "/"


class SecretsConfig(BaseModel):
    backend: str = "secretmanager"  # secretmanager | static
    static: dict[str, str] = Field(default_factory=dict)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CBNOTIFY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    notifier_config: str = ""
    server: ServerConfig = Field(default_factory=ServerConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    http_timeout: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("CBNOTIFY_SETTINGS")

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # Values present in the YAML file take precedence over env vars
    return Settings(**yaml_data)


# ---------------------------------------------------------------------------
# Notifier config document
# ---------------------------------------------------------------------------

class SecretConfig(BaseModel):
    name: str
    value: str


class NotificationSpec(BaseModel):
    filter: str = ""
    params: dict[str, str] = Field(default_factory=dict)
    delivery: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def _stringify_params(cls, value: Any) -> Any:
        # Unquoted YAML scalars such as Discord user IDs load as int
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value


class NotifierSpec(BaseModel):
    notification: NotificationSpec = Field(default_factory=NotificationSpec)
    secrets: list[SecretConfig] = Field(default_factory=list)


class NotifierMetadata(BaseModel):
    name: str = ""


class NotifierConfig(BaseModel):
    """A Cloud Build notifier configuration document."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    metadata: NotifierMetadata = Field(default_factory=NotifierMetadata)
    spec: NotifierSpec = Field(default_factory=NotifierSpec)


def load_notifier_config(path: str | Path) -> NotifierConfig:
    """Parse a notifier YAML document.

    Raises ConfigError if the file is missing, is not YAML, or does not
    match the expected shape.
    """
    path = Path(path)
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigError(f"failed to read notifier config {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid notifier config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"invalid notifier config {path}: expected mapping, got {type(data).__name__}"
        )

    try:
        return NotifierConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid notifier config {path}: {e}") from e
