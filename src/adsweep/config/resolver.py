"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import AdsweepConfig

ENV_PREFIX = "ADSWEEP__"

_SOURCES = ("file", "environment", "cli")


def resolve_with_precedence(
    *,
    defaults: AdsweepConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AdsweepConfig:
    """Layer override sources onto defaults and validate the result.

    Sources apply in order file, environment, CLI; a later source wins for any
    key it sets. Keys may be nested mappings or dotted paths
    (``users.disable_days``).

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Values derived from ``ADSWEEP__`` environment variables.
        cli_overrides: Values supplied on the command line.

    Returns:
        AdsweepConfig: Validated effective configuration.

    Raises:
        ConfigError: If an override is malformed or a value fails validation
            (for example a non-positive day threshold).
    """
    merged = defaults.model_dump(mode="python")
    for name, source in zip(_SOURCES, (file_overrides, env_overrides, cli_overrides)):
        if source is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(source, source_name=name))

    try:
        return AdsweepConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {_describe(exc)}") from exc


def flatten_for_env(config: AdsweepConfig) -> Dict[str, str]:
    """Render the config as ``ADSWEEP__SECTION__KEY`` environment variable pairs."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, (dict, list)):
                flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
            else:
                flat[env_key] = "null" if value is None else str(value)
    return flat


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(segment) for segment in error["loc"])
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name=source_name)
        node = expanded
        *parents, leaf = key.split(".")
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source_name.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf] = _deep_merge(node[leaf], value)
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
