"""Application configuration handling."""

from __future__ import annotations

import os
import stat
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

from borg_hive.core.logging import get_logger

logger = get_logger(__name__)


class _YamlSettings(BaseModel):
    """Settings base: YAML file first, then prefixed environment variables."""

    env_prefix: ClassVar[str] = ""
    default_config_path: ClassVar[Path | None] = None
    yaml_key_map: ClassVar[Mapping[tuple[str, ...], str]] = {}

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @classmethod
    def from_yaml(cls, path: Path | None = None):
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            cls._check_permissions(config_path)
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(cls, raw))
        elif path is not None:
            raise FileNotFoundError(f"File {path} does not exist")
        data.update(_load_env_overrides(cls))
        return cls(**data)

    @classmethod
    def _resolve_config_path(cls, path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{cls.env_prefix}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        if cls.default_config_path is None:
            return None
        resolved_default = cls.default_config_path.expanduser()
        return resolved_default if resolved_default.exists() else None

    @classmethod
    def _check_permissions(cls, path: Path) -> None:
        pass


class DroneSettings(_YamlSettings):
    """Configuration of a drone: where to report and what to back up."""

    env_prefix: ClassVar[str] = "BORG_DRONE_"
    default_config_path: ClassVar[Path | None] = Path("/etc/borg-drone/config.yaml")
    yaml_key_map: ClassVar[Mapping[tuple[str, ...], str]] = {
        ("vinculum", "address"): "vinculum_address",
        ("vinculum", "token"): "vinculum_token",
        ("borg", "repository"): "repository",
        ("borg", "passphrase"): "passphrase",
        ("borg", "pattern_file_path"): "pattern_file_path",
        ("borg", "remote_path"): "remote_path",
        ("borg", "borg_path"): "borg_path",
        ("hooks", "pre"): "pre_hook",
        ("hooks", "post"): "post_hook",
        ("logging", "level"): "log_level",
    }

    vinculum_address: str
    vinculum_token: str
    repository: str
    passphrase: str
    pattern_file_path: Path
    remote_path: str | None = None
    borg_path: str = "borg"
    pre_hook: str = ""
    post_hook: str = ""
    log_level: str = "INFO"

    @field_validator("vinculum_address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("pre_hook", "post_hook", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> str:
        return "" if value is None else value

    @classmethod
    def _check_permissions(cls, path: Path) -> None:
        mode = path.stat().st_mode
        if mode & (stat.S_IRWXO | stat.S_IWGRP):
            logger.warning(
                "%s has too broad permissions. 0600, 0400, 0640 are recommended.",
                path,
            )


class VinculumSettings(_YamlSettings):
    """Configuration of the collector service."""

    env_prefix: ClassVar[str] = "VINCULUM_"
    default_config_path: ClassVar[Path | None] = Path("/etc/borg-vinculum/config.yaml")
    yaml_key_map: ClassVar[Mapping[tuple[str, ...], str]] = {
        ("server", "listen_address"): "listen_address",
        ("server", "listen_port"): "listen_port",
        ("server", "admin_token"): "admin_token",
        ("storage", "db_path"): "db_path",
        ("matrix", "homeserver"): "matrix_homeserver",
        ("matrix", "username"): "matrix_username",
        ("matrix", "password"): "matrix_password",
        ("matrix", "room"): "matrix_room",
        ("logging", "level"): "log_level",
        ("logging", "json"): "log_json",
    }

    listen_address: str = "127.0.0.1"
    listen_port: int = 8080
    admin_token: str = ""
    db_path: Path = Field(default=Path.home() / ".borg-vinculum" / "vinculum.db")
    matrix_homeserver: str = "https://matrix.org"
    matrix_username: str = ""
    matrix_password: str = ""
    matrix_room: str = ""
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")


def _flatten_yaml(
    settings_cls: type[_YamlSettings],
    raw: Mapping[str, Any],
    prefix: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Flatten nested YAML configuration to settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(settings_cls, value, prefix=next_prefix))
        else:
            mapped_key = settings_cls.yaml_key_map.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in settings_cls.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides(settings_cls: type[_YamlSettings]) -> dict[str, Any]:
    """Map prefixed environment variables into settings fields."""
    overrides: dict[str, Any] = {}
    prefix = settings_cls.env_prefix
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field_name = key[len(prefix) :].lower()
        if field_name in settings_cls.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> VinculumSettings:
    """Cached collector settings accessor for dependency injection."""
    return VinculumSettings.from_yaml()


__all__ = ["DroneSettings", "VinculumSettings", "get_settings"]
