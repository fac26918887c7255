"""Configuration management for Nisaba Bot.

This module provides configuration models and loading functionality using Pydantic
for validation and type safety. A single versioned schema covers every deployment;
flat version-0 documents are migrated into the sectioned layout on load.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, ProfileError

CONFIG_VERSION = 1

DEFAULT_NICKNAME = "Nisaba"
DEFAULT_API_URL = "http://localhost:8080/v1/chat/completions"
DEFAULT_ACKNOWLEDGEMENT = "I will think about that and be back with you shortly."

# Flat version-0 keys and their sectioned location.
_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "server": ("irc", "server"),
    "channel": ("irc", "channel"),
    "nickname": ("irc", "nickname"),
    "port": ("irc", "port"),
    "use_ssl": ("irc", "use_ssl"),
    "validate_ssl": ("irc", "validate_ssl"),
    "api_url": ("api", "url"),
    "api_key": ("api", "key"),
    "api_mode": ("api", "mode"),
    "commands": ("chat", "commands"),
    "message_size": ("chat", "message_size"),
}

_DOTENV_LOADED = False


def _load_env_once() -> None:
    """Load environment variables from a .env file exactly once."""

    global _DOTENV_LOADED
    if not _DOTENV_LOADED:
        load_dotenv()
        _DOTENV_LOADED = True


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in configuration data."""

    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge(base[key], value)
        else:
            base[key] = value


def read_config_document(path: str | Path) -> dict[str, Any]:
    """Read a YAML or JSON configuration document into a dict.

    The format is chosen by file suffix; ``.json`` is parsed as JSON and
    anything else as YAML.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file cannot be parsed or is not a mapping
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as handle:
        if config_path.suffix.lower() == ".json":
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON in config file: {exc}") from exc
        else:
            try:
                data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in config file: {exc}") from exc

    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_path}")
    return _expand_env_vars(data)


class IRCConfig(BaseModel):
    """Connection settings for the IRC transport."""

    server: str = Field(..., description="IRC server hostname")
    channel: str = Field(..., description="Channel to join, e.g. #nisaba")
    nickname: str = Field(default=DEFAULT_NICKNAME, description="Bot nickname and address name")
    port: int = Field(default=6667, ge=1, le=65535, description="Server port")
    use_ssl: bool = Field(default=False, description="Connect with TLS")
    validate_ssl: bool = Field(default=False, description="Verify the server certificate")
    password: str | None = Field(default=None, description="Server password (PASS)")
    realname: str | None = Field(default=None, description="Real name; defaults to the nickname")

    @field_validator("server", "channel", "nickname")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class APIConfig(BaseModel):
    """Completion endpoint settings."""

    url: str = Field(default=DEFAULT_API_URL, description="Completion endpoint URL")
    key: str = Field(default="null", description="Bearer token sent in the Authorization header")
    mode: Literal["chat", "query"] = Field(
        default="chat",
        description="'chat' for /v1/chat/completions, 'query' for /completion",
    )
    timeout: float | None = Field(
        default=None,
        gt=0.0,
        description="HTTP deadline in seconds; unset waits indefinitely",
    )
    parameter_keys: Literal["snake", "compact"] = Field(
        default="snake",
        description="Generation parameter key style: 'snake' (top_k) or 'compact' (topk)",
    )


class ChatConfig(BaseModel):
    """Configuration for chat controller behavior."""

    commands: bool = Field(default=True, description="Enable !directives")
    message_size: int = Field(default=400, ge=1, description="Maximum characters per chunk")
    delay: float = Field(default=1.0, ge=0.0, description="Seconds between reply chunks")
    acknowledgement: str | None = Field(
        default=DEFAULT_ACKNOWLEDGEMENT,
        description="Sent when a query is accepted; empty disables it",
    )
    system_prompt: str | None = Field(
        default=None,
        description="Seed system prompt; overrides storage.system_prompt_file",
    )
    reminder: str | None = Field(
        default=None,
        description="System text appended after every reply; overrides storage.reminder_file",
    )


class StorageConfig(BaseModel):
    """File locations for transcript, block list and profiles.

    Relative paths resolve against ``config_dir`` when that directory exists,
    otherwise against the working directory.
    """

    config_dir: str = Field(default="config", description="Directory holding bot files")
    transcript_file: str = Field(default="history.json", description="Transcript file")
    blocklist_file: str = Field(default="blocklist.txt", description="Blocked sender names")
    system_prompt_file: str = Field(default="systemprompt.txt", description="Seed system prompt")
    reminder_file: str = Field(default="reminder.txt", description="Reminder text")
    options_file: str = Field(default="options.json", description="Default parameter profile")
    options_pattern: str = Field(
        default="options.{name}.json", description="Named parameter profile file pattern"
    )
    profile_pattern: str = Field(
        default="config.{name}.yaml", description="Named configuration profile file pattern"
    )

    @field_validator("options_pattern", "profile_pattern")
    @classmethod
    def _has_name_placeholder(cls, value: str) -> str:
        if "{name}" not in value:
            raise ValueError("pattern must contain '{name}'")
        return value

    def resolve(self, file_name: str) -> Path:
        """Resolve a file name against the config directory."""
        base = Path(self.config_dir)
        if base.is_dir():
            return base / file_name
        return Path(file_name)

    @property
    def transcript_path(self) -> Path:
        return self.resolve(self.transcript_file)

    @property
    def blocklist_path(self) -> Path:
        return self.resolve(self.blocklist_file)

    @property
    def system_prompt_path(self) -> Path:
        return self.resolve(self.system_prompt_file)

    @property
    def reminder_path(self) -> Path:
        return self.resolve(self.reminder_file)

    @property
    def options_path(self) -> Path:
        return self.resolve(self.options_file)

    def options_profile_path(self, name: str) -> Path:
        return self.resolve(self.options_pattern.format(name=name))

    def profile_path(self, name: str) -> Path:
        return self.resolve(self.profile_pattern.format(name=name))


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    log_file: str | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class BotConfig(BaseSettings):
    """Main configuration for Nisaba Bot."""

    model_config = SettingsConfigDict(
        env_prefix="NISABA_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_layout(cls, data: Any) -> Any:
        """Move flat version-0 keys into their sections."""

        if not isinstance(data, dict):
            return data

        version = data.get("version")
        legacy = [key for key in _LEGACY_KEYS if key in data]
        if version is None and legacy:
            data = dict(data)
            for key in legacy:
                section, field_name = _LEGACY_KEYS[key]
                target = dict(data.get(section) or {})
                target.setdefault(field_name, data.pop(key))
                data[section] = target
            data["version"] = CONFIG_VERSION
        return data

    version: int = Field(default=CONFIG_VERSION, description="Configuration schema version")
    irc: IRCConfig = Field(..., description="IRC connection settings")
    api: APIConfig = Field(default_factory=APIConfig, description="Completion endpoint settings")
    chat: ChatConfig = Field(default_factory=ChatConfig, description="Chat behavior settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="File locations")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    debug: bool = Field(default=False, description="Enable debug logging")

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value > CONFIG_VERSION:
            raise ValueError(
                f"Configuration version {value} is newer than supported ({CONFIG_VERSION})"
            )
        return value

    @classmethod
    def from_file(cls, path: str | Path) -> BotConfig:
        """Load configuration from a YAML or JSON file.

        Raises:
            ConfigurationError: If the file is missing, unparsable, or invalid
        """

        _load_env_once()
        try:
            config_data = read_config_document(path)
            return cls(**config_data)
        except FileNotFoundError as exc:
            raise ConfigurationError(str(exc)) from exc
        except ValueError as exc:
            # ValidationError is a ValueError subclass
            raise ConfigurationError(_describe_error(exc, path)) from exc

    @classmethod
    def from_yaml(cls, path: str | Path) -> BotConfig:
        """Load configuration from a YAML file."""
        return cls.from_file(path)

    @classmethod
    def from_json(cls, path: str | Path) -> BotConfig:
        """Load configuration from a JSON file."""
        return cls.from_file(path)

    def with_profile(self, name: str) -> BotConfig:
        """Return a copy of this configuration overlaid with a named profile.

        The profile file is a partial document; its sections are merged over
        the current values. Connection settings (``irc``) cannot be switched
        at runtime and are ignored.

        Raises:
            ProfileError: If the profile file is missing or invalid
        """
        path = self.storage.profile_path(name)
        try:
            overrides = read_config_document(path)
        except FileNotFoundError as exc:
            raise ProfileError(f"Profile file not found: {path}", profile=name) from exc
        except ValueError as exc:
            raise ProfileError(str(exc), profile=name) from exc

        overrides.pop("irc", None)
        for key in _LEGACY_KEYS:
            if key in overrides and _LEGACY_KEYS[key][0] != "irc":
                section, field_name = _LEGACY_KEYS[key]
                overrides.setdefault(section, {})[field_name] = overrides.pop(key)
            else:
                overrides.pop(key, None)

        config_dict = self.model_dump()
        _merge(config_dict, overrides)
        try:
            return BotConfig(**config_dict)
        except ValidationError as exc:
            raise ProfileError(_describe_error(exc, path), profile=name) from exc

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""

        return self.model_dump()


def _describe_error(exc: Exception, path: str | Path) -> str:
    if isinstance(exc, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return f"Invalid configuration in {path}: {problems}"
    return str(exc)


def find_config_file(name: str = "config.yaml", config_dir: str = "config") -> Path:
    """Locate a configuration file, preferring ``config_dir`` when it exists.

    Falls back to ``config.json`` when the YAML file is absent, so flat
    version-0 deployments start without renaming anything.
    """
    base = Path(config_dir)
    candidates = [name]
    if name == "config.yaml":
        candidates.append("config.json")
    for candidate in candidates:
        path = base / candidate if base.is_dir() else Path(candidate)
        if path.exists():
            return path
    return base / name if base.is_dir() else Path(name)
