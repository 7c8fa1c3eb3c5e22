"""
Path resolution for llmbridge configuration files.
"""

import os
from pathlib import Path

HOME_ENV_VAR = "LLMBRIDGE_HOME"
PROJECT_DIR_NAME = ".llmbridge"
PROJECT_CONFIG_NAME = "project.yaml"
GLOBAL_CONFIG_NAME = "config.yaml"


def get_llmbridge_home() -> Path:
    """
    Get the llmbridge home directory.

    $LLMBRIDGE_HOME when set, otherwise ~/.llmbridge.
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / PROJECT_DIR_NAME


def get_global_config_path() -> Path:
    return get_llmbridge_home() / GLOBAL_CONFIG_NAME


def get_default_catalog_path() -> Path:
    """Get the path of the model catalog shipped with the package."""
    return Path(__file__).parent / "defaults" / "models.yaml"


def find_project_config(start_path: Path | None = None) -> Path | None:
    """
    Find the nearest .llmbridge/project.yaml.

    Checks the start directory (the working directory by default) and then
    each parent up to the filesystem root.

    Args:
        start_path: Directory to start from.

    Returns:
        Path to the project config, or None if no directory has one.
    """
    start = Path(start_path).resolve() if start_path is not None else Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / PROJECT_DIR_NAME / PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in a configured path and resolve it."""
    return Path(os.path.expanduser(os.path.expandvars(str(path)))).resolve()
