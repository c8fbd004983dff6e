"""Configuration management for pinevault."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import PinevaultConfig
from .resolver import assign_dotted, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.pinevault/config.yaml")
PROJECT_CONFIG_NAME = ".pinevault.yaml"
ENV_PREFIX = "PINEVAULT__"
_CONFIG_HEADER = textwrap.dedent(
    """\
    # pinevault configuration file
    # Generated automatically; manage via `pinevault config set` or edit by hand.
    # A project may override any value in <root>/.pinevault.yaml.
    """
)


class ConfigManager:
    """Load and persist configuration data, applying precedence rules.

    Precedence, lowest first: defaults, the user file, the project file found
    at ``<root>/.pinevault.yaml``, ``PINEVAULT__SECTION__KEY`` environment
    variables, and CLI overrides.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        project_root: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._project_root = project_root
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved user configuration path."""
        return self._config_path

    @property
    def project_config_path(self) -> Path | None:
        """Return the project override file path, if a project root is set."""
        if self._project_root is None:
            return None
        return self._project_root / PROJECT_CONFIG_NAME

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = False,
    ) -> PinevaultConfig:
        """Load configuration data from disk, applying precedence rules."""
        if ensure_file:
            self.ensure_exists()

        project_data: dict[str, Any] | None = None
        project_path = self.project_config_path
        if project_path is not None:
            project_data = self._read_yaml(project_path)

        env_data = self._extract_env(self._env) if include_env else None

        return resolve_with_precedence(
            defaults=PinevaultConfig(),
            sources=(
                ("file", self._read_yaml(self._config_path)),
                ("project", project_data),
                ("environment", env_data),
                ("cli", cli_overrides),
            ),
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored in the user file."""
        return self._read_yaml(self._config_path)

    def save(self, config: PinevaultConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to the user file."""
        if isinstance(config, PinevaultConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def set_value(self, key: str, value: Any) -> PinevaultConfig:
        """Persist a dotted ``key`` in the user file after validating the result.

        Raises:
            ConfigError: If the key is empty or the resulting config is invalid.
        """
        segments = [segment.strip() for segment in key.split(".") if segment.strip()]
        if not segments:
            raise ConfigError("KEY must specify a dotted path such as 'backup.keep_count'.")
        file_data = self.load_file_overrides()
        assign_dotted(file_data, segments, value)
        config = resolve_with_precedence(defaults=PinevaultConfig(), sources=(("file", file_data),))
        self.save(file_data)
        return config

    def ensure_exists(self) -> Path:
        """Create a user configuration file with defaults if one does not exist."""
        path = self._config_path
        if not path.exists():
            self._write_file(PinevaultConfig().model_dump(mode="python"))
        return path

    def read_text(self) -> str:
        """Return the current user configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file {path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        timestamp = f"# Last updated: {stamp}\n"
        self._config_path.write_text(_CONFIG_HEADER + timestamp + serialized, encoding="utf-8")

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not path:
                continue
            try:
                parsed_value = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                parsed_value = raw_value
            assign_dotted(overrides, path, parsed_value)
        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "PROJECT_CONFIG_NAME",
    "PinevaultConfig",
    "resolve_with_precedence",
    "ConfigError",
]
