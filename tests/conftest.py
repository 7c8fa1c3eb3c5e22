"""
Pytest configuration and fixtures for llmbridge tests.
"""

import logging
import os
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from llmbridge.config import clear_config_cache
from llmbridge.logging_utils import PACKAGE_LOGGER_NAME
from llmbridge.providers import LLMStats, ModelRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_llmbridge_home(temp_dir: Path, monkeypatch) -> Generator[Path, None, None]:
    """Provide an isolated ~/.llmbridge directory with no LLMBRIDGE_* overrides."""
    for key in list(os.environ):
        if key.startswith("LLMBRIDGE_"):
            monkeypatch.delenv(key, raising=False)

    llmbridge_home = temp_dir / ".llmbridge"
    llmbridge_home.mkdir()
    monkeypatch.setenv("LLMBRIDGE_HOME", str(llmbridge_home))

    clear_config_cache()
    yield llmbridge_home
    clear_config_cache()


@pytest.fixture
def mock_project_dir(temp_dir: Path) -> Generator[Path, None, None]:
    """Provide a project directory with a .llmbridge/ config directory."""
    project_dir = temp_dir / "test-project"
    project_dir.mkdir()
    (project_dir / ".llmbridge").mkdir()

    yield project_dir


@pytest.fixture
def sample_catalog() -> dict[str, Any]:
    """Provide a small valid model catalog."""
    return {
        "models": {
            "GPT_EMBEDDINGS_ADA002": {
                "model_id": "text-embedding-ada-002",
                "purpose": "embeddings",
                "dimensions": 1536,
                "max_total_tokens": 8191,
                "family": "openai",
            },
            "GPT_COMPLETIONS_GPT4": {
                "model_id": "gpt-4",
                "purpose": "completions",
                "max_completion_tokens": 4096,
                "max_total_tokens": 8192,
                "family": "openai",
            },
            "GPT_COMPLETIONS_GPT4_32k": {
                "model_id": "gpt-4-32k",
                "purpose": "completions",
                "max_completion_tokens": 4096,
                "max_total_tokens": 32768,
                "family": "openai",
            },
            "AWS_EMBEDDINGS_TITAN_V1": {
                "model_id": "amazon.titan-embed-text-v1",
                "purpose": "embeddings",
                "dimensions": 1024,
                "max_total_tokens": 8192,
                "family": "bedrock_titan",
            },
            "AWS_COMPLETIONS_CLAUDE_V35": {
                "model_id": "anthropic.claude-3-5-sonnet-20240620-v1:0",
                "purpose": "completions",
                "max_completion_tokens": 4088,
                "max_total_tokens": 200000,
                "family": "bedrock_claude",
            },
            "AWS_COMPLETIONS_LLAMA_V33_70B_INSTRUCT": {
                "model_id": "us.meta.llama3-3-70b-instruct-v1:0",
                "purpose": "completions",
                "max_completion_tokens": 8192,
                "max_total_tokens": 128000,
                "family": "bedrock_llama",
            },
            "GCP_EMBEDDINGS_TEXT_005": {
                "model_id": "text-embedding-005",
                "purpose": "embeddings",
                "dimensions": 768,
                "max_total_tokens": 2048,
                "family": "vertexai_gemini",
            },
            "GCP_COMPLETIONS_GEMINI_FLASH20": {
                "model_id": "gemini-2.0-flash-001",
                "purpose": "completions",
                "max_completion_tokens": 8192,
                "max_total_tokens": 1048576,
                "family": "vertexai_gemini",
            },
        },
        "families": {
            "openai": {
                "embeddings": "GPT_EMBEDDINGS_ADA002",
                "primary_completion": "GPT_COMPLETIONS_GPT4",
                "secondary_completion": "GPT_COMPLETIONS_GPT4_32k",
            },
            "bedrock_claude": {
                "embeddings": "AWS_EMBEDDINGS_TITAN_V1",
                "primary_completion": "AWS_COMPLETIONS_CLAUDE_V35",
            },
            "bedrock_llama": {
                "embeddings": "AWS_EMBEDDINGS_TITAN_V1",
                "primary_completion": "AWS_COMPLETIONS_LLAMA_V33_70B_INSTRUCT",
            },
            "vertexai_gemini": {
                "embeddings": "GCP_EMBEDDINGS_TEXT_005",
                "primary_completion": "GCP_COMPLETIONS_GEMINI_FLASH20",
            },
        },
    }


@pytest.fixture
def registry(sample_catalog: dict[str, Any]) -> ModelRegistry:
    """Provide a validated registry built from the sample catalog."""
    return ModelRegistry.load(sample_catalog)


@pytest.fixture
def stats() -> LLMStats:
    """Provide a stats tracker that does not print ticks."""
    return LLMStats(print_ticks=False)


@pytest.fixture
def package_logger() -> Generator[logging.Logger, None, None]:
    """Provide the package logger and restore its handlers and level afterwards."""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield package_logger
    package_logger.handlers = handlers
    package_logger.setLevel(level)
