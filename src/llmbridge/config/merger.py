"""
Configuration merger for llmbridge.

Layers configuration files and applies catalog overrides. An override key
may carry a list operator prefix: "+key" appends unique items to the base
list, "-key" removes items from it.
"""

from typing import Any

_APPEND = "+"
_REMOVE = "-"


def _merge_list(base_items: Any, operator: str, items: list[Any]) -> list[Any] | None:
    """Apply a list operator; None means the key should be left as it is."""
    if not isinstance(base_items, list):
        return list(items) if operator == _APPEND else None
    if operator == _APPEND:
        return base_items + [item for item in items if item not in base_items]
    return [item for item in base_items if item not in items]


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Merge rules:
    - Nested dicts are merged recursively
    - Any other value (lists included) replaces the base value
    - "+key" with a list appends unique items, "-key" removes items
    - None removes the key

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary. Neither input is modified.

    Examples:
        >>> deep_merge({"models": {"A": {"max_total_tokens": 8192, "family": "openai"}}},
        ...            {"models": {"A": {"max_total_tokens": 16384}}})
        {'models': {'A': {'max_total_tokens': 16384, 'family': 'openai'}}}

        >>> deep_merge({"tags": ["a", "b"]}, {"-tags": ["b"]})
        {'tags': ['a']}
    """
    merged = dict(base)

    for key, value in override.items():
        operator = key[:1]
        if operator in (_APPEND, _REMOVE) and isinstance(value, list):
            target = key[1:]
            items = _merge_list(merged.get(target), operator, value)
            if items is not None:
                merged[target] = items
            continue

        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value

    return merged


def set_nested_value(config: dict[str, Any], key_path: str, value: Any) -> dict[str, Any]:
    """
    Set a value under a dot-separated key path, in place.

    Missing or non-dict intermediate entries are replaced by dicts.

    Args:
        config: Configuration dictionary.
        key_path: Dot-separated key path (e.g. "resilience.chars_per_token_estimate").
        value: Value to set.

    Returns:
        The same dictionary, for chaining.
    """
    *parents, leaf = key_path.split(".")
    node = config
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child
    node[leaf] = value
    return config
