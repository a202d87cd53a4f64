"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs   (CLI flags passed by Click)
  2. Env vars      (``TREEQ_*`` prefix, ``__`` for nested sections)
  3. TOML file     (``treeq.toml`` discovered via walk-up)
  4. Code defaults (baked into the section models)
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from treeq.config.discovery import find_config
from treeq.config.models import (
    CanonConfig,
    DiffConfig,
    EngineConfig,
    IoConfig,
    MergeConfig,
)
from treeq.domain.errors import ExitCode


class ConfigError(click.ClickException):
    """The config file is missing or unreadable."""

    exit_code = ExitCode.USAGE


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``treeq.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise ConfigError(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class TreeqSettings(BaseSettings):
    """Settings for one treeq invocation.

    Stored on the :class:`~treeq.commands._context.AppContext` and handed to
    every service. Services only read the engine-facing sections; the
    output flags are consumed by the CLI layer.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "TREEQ_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    canon: CanonConfig = Field(default_factory=CanonConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    io: IoConfig = Field(default_factory=IoConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        cwd: Path | None = None,
        **cli_flags: Any,
    ) -> TreeqSettings:
        """Construct settings from a CLI invocation.

        An explicit *config_path* must exist; otherwise ``treeq.toml`` is
        discovered by walking up from *cwd*.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                msg = f"Config file not found: {config_path}"
                raise ConfigError(msg)
        else:
            toml_path = find_config(cwd)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        except ValidationError as exc:
            msg = f"Invalid settings: {exc}"
            raise ConfigError(msg) from exc
        finally:
            _tls.toml_path = None
