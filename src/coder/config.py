"""
Configuration management for Coder

Uses pydantic-settings for environment variable parsing and validation.
Sources, highest priority first: constructor arguments, CODER_* environment
variables, `.env`, then the JSON config file in the user config directory.
"""

import json
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

APP_NAME = "coder"

# Tools that never ask for confirmation
DEFAULT_AUTO_APPROVE: dict[str, bool] = {
    "read": True,
    "ls": True,
    "glob": True,
    "grep": True,
    "tree": True,
    "agent": True,
}


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """Return the per-user configuration directory for this platform."""
    home = Path.home()

    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / app_name
    if sys.platform.startswith("win"):
        app_data = os.getenv("APPDATA") or str(home / "AppData" / "Roaming")
        return Path(app_data) / app_name

    xdg_config = os.getenv("XDG_CONFIG_HOME") or str(home / ".config")
    return Path(xdg_config) / app_name


def get_config_file() -> Path:
    """Path of the JSON config file (override with CODER_CONFIG_FILE)."""
    override = os.getenv("CODER_CONFIG_FILE")
    if override:
        return Path(override).expanduser()
    return get_config_dir() / "config.json"


class ProviderConfig(BaseModel):
    """Model provider endpoint and credentials."""

    provider: Literal["openai", "anthropic", "openrouter"] = "openai"
    endpoint: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    lite_model: str = ""
    max_tokens: int = 4096
    timeout_seconds: float = 120.0


class UIConfig(BaseModel):
    """Terminal front-end options."""

    color_enabled: bool = True
    show_spinner: bool = True


class PermissionConfig(BaseModel):
    """Static allow-list: tool name -> auto-approve."""

    auto_approve: dict[str, bool] = Field(default_factory=lambda: dict(DEFAULT_AUTO_APPROVE))


class CompactionSettings(BaseModel):
    """Automatic conversation compaction policy."""

    auto_compact: bool = True
    max_context_tokens: int = 100_000
    compaction_threshold: float = 0.7


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CODER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Coder"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "WARNING"

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
    compaction: CompactionSettings = Field(default_factory=CompactionSettings)

    # Provider keys picked up from the conventional variables
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CODER_OPENAI_API_KEY", "OPENAI_API_KEY", "openai_api_key"),
    )
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CODER_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY", "anthropic_api_key"),
    )
    openrouter_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CODER_OPENROUTER_API_KEY", "OPENROUTER_API_KEY", "openrouter_api_key"),
    )

    # Tools
    shell_timeout_seconds: int = Field(default=120, description="Timeout for a single shell command")
    max_tool_output_chars: int = Field(default=30_000, description="Truncate tool output beyond this")

    # Session
    api_logging: bool = Field(default=True, description="Mirror API traffic to a JSONL log")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=get_config_file()),
            file_secret_settings,
        )

    @property
    def config_dir(self) -> Path:
        return get_config_file().parent

    @property
    def logs_dir(self) -> Path:
        return self.config_dir / "logs"

    @property
    def history_file(self) -> Path:
        return self.config_dir / "history"

    def resolve_api_key(self) -> str:
        """API key for the configured provider, falling back to the provider's env var."""
        if self.provider.api_key:
            return self.provider.api_key

        api_key_map = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
        }
        return api_key_map.get(self.provider.provider, "")

    def set_value(self, key: str, value: str) -> None:
        """Update a dotted key such as `provider.model` from a string value."""
        section_name, _, field_name = key.partition(".")
        section = getattr(self, section_name, None)
        if not field_name or not isinstance(section, BaseModel):
            raise KeyError(f"unknown config key: {key}")
        if field_name not in type(section).model_fields:
            raise KeyError(f"unknown config key: {key}")

        current = getattr(section, field_name)
        if isinstance(current, bool):
            if value not in ("true", "false"):
                raise ValueError(f"invalid boolean value: {value}, use true or false")
            parsed: Any = value == "true"
        elif isinstance(current, (int, float)):
            try:
                parsed = type(current)(value)
            except ValueError:
                raise ValueError(f"invalid {field_name} value: {value}") from None
        elif isinstance(current, str):
            parsed = value
        else:
            raise KeyError(f"unsupported config key: {key}")

        updated = section.model_validate({**section.model_dump(), field_name: parsed})
        setattr(self, section_name, updated)


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Persist the user-editable sections to the JSON config file."""
    path = path or get_config_file()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(
        mode="json",
        include={"provider", "ui", "permissions", "compaction"},
    )
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
