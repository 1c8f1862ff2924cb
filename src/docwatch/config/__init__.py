"""Configuration management for docwatch."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel

from .exceptions import ConfigError
from .models import DocwatchConfig
from .resolver import assign_nested, parse_env_overrides, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.docwatch/config.yaml")
_HEADER = (
    "# docwatch configuration file\n"
    "# Manage with `docwatch config set` and `docwatch config reset`.\n"
)


def section_names() -> list[str]:
    """Return the top-level configuration sections in file order."""
    return list(DocwatchConfig.model_fields)


def _section_summary(section: str) -> str:
    model = DocwatchConfig.model_fields[section].annotation
    doc = (getattr(model, "__doc__", None) or "").strip()
    return doc.splitlines()[0] if doc else section


def split_key(key: str) -> list[str]:
    """Split a dotted KEY and check it names a known section and setting.

    Raises:
        ConfigError: If the section or setting does not exist.
    """
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if len(segments) != 2:
        raise ConfigError(f"'{key}' must look like SECTION.SETTING, e.g. 'scan.interval_seconds'.")
    section, setting = segments
    if section not in DocwatchConfig.model_fields:
        raise ConfigError(
            f"Unknown section '{section}'. Expected one of: {', '.join(section_names())}."
        )
    model = DocwatchConfig.model_fields[section].annotation
    fields = getattr(model, "model_fields", {})
    if setting not in fields:
        raise ConfigError(
            f"Unknown setting '{setting}' in section '{section}'. "
            f"Expected one of: {', '.join(fields)}."
        )
    return segments


class ConfigManager:
    """Read, validate, and write ``~/.docwatch/config.yaml``.

    The file only ever holds values that differ from the built-in defaults,
    grouped by section. Every write is validated against
    :class:`DocwatchConfig` first, so an invalid value never reaches disk.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> DocwatchConfig:
        """Return the effective configuration: defaults < file < env < CLI."""
        env_data: Mapping[str, str] | None = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=DocwatchConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=parse_env_overrides(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def env_overrides(self) -> dict[str, Any]:
        """Return ``DOCWATCH__`` overrides in effect, keyed by dotted setting."""
        flat: dict[str, Any] = {}
        for section, values in parse_env_overrides(self._env).items():
            if isinstance(values, dict):
                for setting, value in values.items():
                    flat[f"{section}.{setting}"] = value
            else:
                flat[section] = values
        return flat

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the overrides stored on disk, or an empty mapping."""
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {self._config_path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError(f"{self._config_path} must contain a mapping of sections.")
        return raw

    def save(self, overrides: Mapping[str, Any]) -> DocwatchConfig:
        """Validate ``overrides`` and write the values that differ from defaults.

        Returns:
            DocwatchConfig: The configuration the file now describes.

        Raises:
            ConfigError: If the overrides do not validate; the file is untouched.
        """
        config = resolve_with_precedence(defaults=DocwatchConfig(), file_overrides=overrides)
        self._write(_non_default_sections(config))
        return config

    def set_value(self, key: str, raw_value: str) -> DocwatchConfig:
        """Persist ``SECTION.SETTING = raw_value``; the value is parsed as YAML.

        Raises:
            ConfigError: If the key is unknown or the value is invalid.
        """
        path = split_key(key)
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Unable to parse value for {key}: {exc}") from exc

        overrides = self.load_file_overrides()
        assign_nested(overrides, path, value)
        return self.save(overrides)

    def reset(self, section: str | None = None) -> list[str]:
        """Drop stored overrides for ``section``, or for every section.

        Returns:
            list[str]: Sections whose overrides were removed.

        Raises:
            ConfigError: If ``section`` is not a known section.
        """
        overrides = self.load_file_overrides()
        if section is None:
            removed = [name for name in section_names() if name in overrides]
            overrides = {}
        else:
            if section not in DocwatchConfig.model_fields:
                raise ConfigError(
                    f"Unknown section '{section}'. Expected one of: {', '.join(section_names())}."
                )
            removed = [section] if overrides.pop(section, None) is not None else []
        self.save(overrides)
        return removed

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def _write(self, sections: Mapping[str, Mapping[str, Any]]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        parts = [_HEADER, f"# Last updated: {stamp}\n"]
        for name in section_names():
            if name not in sections:
                continue
            parts.append(f"\n# {_section_summary(name)}\n")
            parts.append(yaml.safe_dump({name: dict(sections[name])}, sort_keys=False))
        self._config_path.write_text("".join(parts), encoding="utf-8")


def _non_default_sections(config: DocwatchConfig) -> dict[str, dict[str, Any]]:
    defaults = DocwatchConfig()
    sections: dict[str, dict[str, Any]] = {}
    for name in section_names():
        current: BaseModel = getattr(config, name)
        baseline = getattr(defaults, name).model_dump(mode="python")
        changed = {
            key: value
            for key, value in current.model_dump(mode="python").items()
            if baseline.get(key) != value
        }
        if changed:
            sections[name] = changed
    return sections


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "DocwatchConfig",
    "resolve_with_precedence",
    "section_names",
    "split_key",
    "ConfigError",
]
