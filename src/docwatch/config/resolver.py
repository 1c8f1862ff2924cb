"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Iterable, Mapping, Tuple

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import DocwatchConfig

ENV_PREFIX = "DOCWATCH__"


def resolve_with_precedence(
    *,
    defaults: DocwatchConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> DocwatchConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values derived from ``DOCWATCH__`` variables.
        cli_overrides: Values supplied on the command line, dotted keys allowed.

    Returns:
        DocwatchConfig: Validated configuration.

    Raises:
        ConfigError: If an override is malformed or the merged result is invalid.
    """
    merged = defaults.model_dump(mode="python")
    sources: Iterable[Tuple[str, Mapping[str, Any] | None]] = (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    for name, source in sources:
        if source is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(source, source_name=name))

    try:
        return DocwatchConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Convert ``DOCWATCH__`` variables into a nested override mapping.

    Values are parsed as YAML literals so ``"30"`` becomes an integer and
    ``"[a, b]"`` a list; unparsable values are kept as raw strings.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_nested(overrides, path, value)
    return overrides


def assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at ``path`` inside ``target``, creating mappings as needed.

    Raises:
        ConfigError: If a non-mapping value sits along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping."
            )
        node = existing
    node[path[-1]] = value


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name=source_name)
        try:
            _merge_into(result, key.split("."), value)
        except ConfigError as exc:
            raise ConfigError(f"{source_name.capitalize()} override for {key}: {exc}") from exc
    return result


def _merge_into(target: dict[str, Any], path: list[str], value: Any) -> None:
    existing = target
    for segment in path[:-1]:
        existing = existing.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError("conflicts with existing value.")
    leaf = path[-1]
    current = existing.get(leaf)
    if isinstance(value, dict) and isinstance(current, dict):
        existing[leaf] = _deep_merge(current, value)
    else:
        existing[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "parse_env_overrides",
    "assign_nested",
]
