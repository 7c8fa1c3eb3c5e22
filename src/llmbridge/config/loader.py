"""
Configuration loader for llmbridge.

Settings are layered, each layer overriding the previous one:
defaults, the global config.yaml in the llmbridge home, the nearest
project .llmbridge/project.yaml, then LLMBRIDGE_* environment variables.
"""

import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from llmbridge.config.merger import deep_merge, set_nested_value
from llmbridge.config.paths import find_project_config, get_global_config_path
from llmbridge.config.schema import Config

logger = logging.getLogger(__name__)

ENV_PREFIX = "LLMBRIDGE_"
ENV_NESTING_SEPARATOR = "__"
# Locates the config files, so it is never a setting itself
_ENV_RESERVED = frozenset({"LLMBRIDGE_HOME"})

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})
_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d+")


class ConfigurationError(Exception):
    """Configuration could not be read or did not validate."""

    pass


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Read a YAML mapping from disk.

    A missing or empty file reads as an empty mapping.

    Raises:
        ConfigurationError: If the file is unreadable, is not valid YAML,
            or does not hold a mapping at the top level.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a mapping at the top of {path}, got {type(data).__name__}"
        )
    return data


def _parse_env_value(raw: str) -> Any:
    """Convert an environment string to bool, int, float, list or str."""
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    if _INT_RE.fullmatch(raw):
        return int(raw)
    if _FLOAT_RE.fullmatch(raw):
        return float(raw)
    if "," in raw:
        return [part.strip() for part in raw.split(",")]
    return raw


def _env_key_path(name: str) -> str:
    # LLMBRIDGE_RESILIENCE__CHARS_PER_TOKEN_ESTIMATE -> resilience.chars_per_token_estimate
    return name[len(ENV_PREFIX) :].lower().replace(ENV_NESTING_SEPARATOR, ".")


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay LLMBRIDGE_* environment variables onto a config dictionary.

    LLMBRIDGE_<KEY> sets a top-level key and LLMBRIDGE_<SECTION>__<KEY>
    a nested one. The dictionary is updated in place and returned.
    """
    for name, raw in os.environ.items():
        if not name.startswith(ENV_PREFIX) or name in _ENV_RESERVED:
            continue
        key_path = _env_key_path(name)
        logger.debug(f"Environment override {name} -> {key_path}")
        set_nested_value(config, key_path, _parse_env_value(raw))
    return config


def _file_layers(project_path: Path | None, skip_project: bool) -> Iterator[dict[str, Any]]:
    global_path = get_global_config_path()
    if global_path.exists():
        logger.debug(f"Using global config {global_path}")
        yield load_yaml_file(global_path)

    if skip_project:
        return
    project_file = find_project_config(project_path)
    if project_file is not None:
        logger.debug(f"Using project config {project_file}")
        yield load_yaml_file(project_file)


def load_config(
    project_path: Path | None = None,
    skip_project: bool = False,
    skip_env: bool = False,
) -> Config:
    """
    Build the effective configuration.

    Args:
        project_path: Directory to start the project config search from.
            Defaults to the working directory.
        skip_project: Ignore any project config.
        skip_env: Ignore LLMBRIDGE_* environment variables.

    Returns:
        Validated Config.

    Raises:
        ConfigurationError: If a file cannot be loaded or the merged
            result fails validation.
    """
    merged = Config().model_dump()
    for layer in _file_layers(project_path, skip_project):
        merged = deep_merge(merged, layer)
    if not skip_env:
        merged = apply_env_overrides(merged)

    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid llmbridge configuration: {e}") from e


_config: Config | None = None


def get_config(reload: bool = False) -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if reload or _config is None:
        _config = load_config()
    return _config


def clear_config_cache() -> None:
    global _config
    _config = None
