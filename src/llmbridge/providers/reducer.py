"""
Prompt size reduction for llmbridge.

Shrinks an oversized prompt by a ratio computed from the reconciled token
usage, so the next attempt has a better chance of fitting the model's
limits. One reduction is never assumed to be enough; callers re-measure
and reduce again on each attempt.
"""

import logging
import math
from typing import Protocol

from llmbridge.config.schema import ResilienceConfig
from llmbridge.providers.exceptions import BadResponseMetadataError
from llmbridge.providers.models import InvocationOutcome, TokenUsage
from llmbridge.providers.registry import ModelRegistry

logger = logging.getLogger(__name__)


class PromptAdaptationStrategy(Protocol):
    """Strategy that shortens a prompt given its last token usage."""

    def adapt_prompt(self, prompt: str, model_key: str, usage: TokenUsage) -> str: ...


class TokenLimitReductionStrategy:
    """Prefix truncation by a ratio derived from completion and total token limits."""

    def __init__(self, registry: ModelRegistry, settings: ResilienceConfig | None = None):
        self.registry = registry
        self.settings = settings or ResilienceConfig()

    def reduction_ratio(self, model_key: str, usage: TokenUsage) -> float:
        """
        Compute the fraction of the prompt to keep.

        Args:
            model_key: Model the usage was measured against.
            usage: Reconciled token usage.

        Returns:
            Ratio in (0, 1) applied to the prompt length.
        """
        settings = self.settings
        max_completion = self.registry.get(model_key).max_completion_tokens
        ratio = 1.0

        # The completion hit its ceiling, so shrink the prompt to nudge a shorter completion
        if max_completion and usage.completion_tokens >= (
            max_completion - settings.completion_max_tokens_limit_buffer
        ):
            ratio = min(
                max_completion / (usage.completion_tokens + 1),
                settings.completion_tokens_reduce_min_ratio,
            )

        if ratio >= 1.0 or usage.is_over_limit:
            prompt_ratio = min(
                usage.max_total_tokens / (usage.total_tokens + 1),
                settings.prompt_tokens_reduce_min_ratio,
            )
            ratio = min(ratio, prompt_ratio)

        return ratio

    def adapt_prompt(self, prompt: str, model_key: str, usage: TokenUsage) -> str:
        """
        Truncate a prompt to fit within the model's token limits.

        Args:
            prompt: Prompt text to shorten.
            model_key: Model the usage was measured against.
            usage: Reconciled token usage.

        Returns:
            Prefix of the prompt; whitespace-only prompts are returned unchanged.
        """
        if not prompt.strip():
            return prompt

        ratio = self.reduction_ratio(model_key, usage)
        new_length = math.floor(len(prompt) * ratio)
        logger.debug(
            f"Reducing prompt for '{model_key}' from {len(prompt)} to {new_length} chars "
            f"(ratio {ratio:.4f})"
        )
        return prompt[:new_length]


class PromptAdapter:
    """Applies a prompt adaptation strategy to EXCEEDED outcomes."""

    def __init__(self, strategy: PromptAdaptationStrategy):
        self.strategy = strategy

    def adapt_prompt_from_outcome(self, prompt: str, outcome: InvocationOutcome) -> str:
        """
        Shorten a prompt using the token usage recorded on an outcome.

        Raises:
            BadResponseMetadataError: If the outcome carries no token usage.
        """
        if outcome.token_usage is None:
            raise BadResponseMetadataError("LLM response metadata was not set for outcome", outcome)
        return self.strategy.adapt_prompt(prompt, outcome.model_key, outcome.token_usage)


def reduce_prompt(
    prompt: str,
    model_key: str,
    usage: TokenUsage,
    registry: ModelRegistry,
    settings: ResilienceConfig | None = None,
) -> str:
    """Shorten a prompt with the default token-limit strategy."""
    return TokenLimitReductionStrategy(registry, settings).adapt_prompt(prompt, model_key, usage)
