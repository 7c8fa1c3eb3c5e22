"""
llmbridge configuration layer.

Layered YAML configuration validated with pydantic, plus the packaged
default model catalog.
"""

from llmbridge.config.loader import (
    ConfigurationError,
    apply_env_overrides,
    clear_config_cache,
    get_config,
    load_config,
    load_yaml_file,
)
from llmbridge.config.merger import deep_merge, set_nested_value
from llmbridge.config.paths import (
    expand_path,
    find_project_config,
    get_default_catalog_path,
    get_global_config_path,
    get_llmbridge_home,
)
from llmbridge.config.schema import (
    CatalogConfig,
    Config,
    ResilienceConfig,
    RetryConfig,
    StatsConfig,
)

__all__ = [
    # Schema
    "Config",
    "ResilienceConfig",
    "RetryConfig",
    "StatsConfig",
    "CatalogConfig",
    # Loader
    "ConfigurationError",
    "load_yaml_file",
    "apply_env_overrides",
    "load_config",
    "get_config",
    "clear_config_cache",
    # Merge
    "deep_merge",
    "set_nested_value",
    # Paths
    "get_llmbridge_home",
    "get_global_config_path",
    "get_default_catalog_path",
    "find_project_config",
    "expand_path",
]
