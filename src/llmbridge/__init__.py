"""
llmbridge - resilient access to interchangeable LLM backends

Classifies provider failures, reconciles token usage from inconsistent
provider metadata and error text, shrinks oversized prompts and extracts
structured output from raw completions.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("llmbridge")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "__version__",
]
