"""
Pydantic configuration schema for llmbridge.

This module defines all configuration models with validation.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Resilience Configuration
# =============================================================================


class ResilienceConfig(BaseModel):
    """Tunables for token reconciliation and prompt shrinking."""

    model_config = ConfigDict(extra="allow")

    # Completion is treated as cut short when within this many tokens of the ceiling
    completion_max_tokens_limit_buffer: int = Field(default=5, ge=0)
    completion_tokens_reduce_min_ratio: float = Field(default=0.75, gt=0.0, lt=1.0)
    prompt_tokens_reduce_min_ratio: float = Field(default=0.85, gt=0.0, lt=1.0)
    chars_per_token_estimate: float = Field(default=2.8, gt=0.0)


# =============================================================================
# Retry Configuration
# =============================================================================


class RetryConfig(BaseModel):
    """Retry timings for the router that sequences attempts."""

    model_config = ConfigDict(extra="allow")

    max_attempts: int = Field(default=3, ge=1)
    min_retry_delay_millis: int = Field(default=20_000, ge=0)
    max_retry_additional_millis: int = Field(default=30_000, ge=0)
    request_timeout_millis: int = Field(default=7 * 60 * 1000, gt=0)


# =============================================================================
# Stats Configuration
# =============================================================================


class StatsConfig(BaseModel):
    """Invocation outcome tracking configuration."""

    print_ticks: bool = True


# =============================================================================
# Catalog Configuration
# =============================================================================


class CatalogConfig(BaseModel):
    """Model catalog source configuration."""

    model_config = ConfigDict(extra="allow")

    # Replacement for the packaged models.yaml
    path: Path | None = None
    # Deep-merged over the loaded table before validation
    overrides: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for llmbridge.

    Configuration can be loaded from YAML files and environment variables,
    merged in order of priority.
    """

    model_config = ConfigDict(extra="allow")

    # Provider family whose model set is used (e.g. "bedrock_claude")
    family: str | None = None
    logging_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
