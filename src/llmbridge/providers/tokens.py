"""
Token usage reconciliation for llmbridge.

Providers report token consumption inconsistently: partial metadata,
negative placeholders, or only a free-text error message. The reconciler
turns any of these into a fully resolved TokenUsage, falling back to
worst-case assumptions rather than failing.
"""

import logging
import math
import re
from dataclasses import dataclass

from llmbridge.config.schema import ResilienceConfig
from llmbridge.providers.models import TokenUsage
from llmbridge.providers.patterns import ErrorMsgPattern, error_patterns_for
from llmbridge.providers.registry import ModelRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ParsedCounts:
    """Counts pulled from an error message; -1 means not reported."""

    max_total_tokens: int = -1
    prompt_tokens: int = -1
    completion_tokens: int = 0


def _resolved(value: int | None) -> int:
    return -1 if value is None else value


class TokenUsageReconciler:
    """
    Resolve token usage for one model from metadata or error messages.

    Pure with respect to its inputs plus the frozen registry, so one instance
    can be shared by concurrent invocations.
    """

    def __init__(self, registry: ModelRegistry, settings: ResilienceConfig | None = None):
        self.registry = registry
        self.settings = settings or ResilienceConfig()

    def from_metadata(
        self,
        model_key: str,
        prompt_tokens: int | None,
        completion_tokens: int | None,
        max_total_tokens: int | None,
    ) -> TokenUsage:
        """
        Resolve token usage from provider response metadata.

        Missing or negative values are defaulted: completion tokens to 0,
        the limit to the model's published limit, and prompt tokens to
        whatever the completion did not consume plus one.

        Args:
            model_key: Model the response came from.
            prompt_tokens: Reported prompt tokens, if any.
            completion_tokens: Reported completion tokens, if any.
            max_total_tokens: Reported limit, if any.

        Returns:
            Fully resolved TokenUsage.
        """
        prompt = _resolved(prompt_tokens)
        completion = _resolved(completion_tokens)
        max_total = _resolved(max_total_tokens)

        if completion < 0:
            completion = 0
        if max_total < 0:
            max_total = self.registry.get(model_key).max_total_tokens
        if prompt < 0:
            prompt = max(1, max_total - completion + 1)

        return TokenUsage(
            prompt_tokens=prompt, completion_tokens=completion, max_total_tokens=max_total
        )

    def from_error_message(self, model_key: str, prompt: str, error_text: str) -> TokenUsage:
        """
        Resolve token usage from a provider's limit-exceeded error message.

        The provider family's patterns are tried in order and the first match
        wins. When nothing useful is found the prompt tokens are estimated
        from the prompt length, never below the limit plus one.

        Args:
            model_key: Model the request was sent to.
            prompt: Prompt text that was sent.
            error_text: Error message returned by the provider.

        Returns:
            Fully resolved TokenUsage.
        """
        descriptor = self.registry.get(model_key)
        published_max = descriptor.max_total_tokens
        parsed = self._parse_error_message(
            error_text, error_patterns_for(descriptor.family), published_max
        )

        max_total = parsed.max_total_tokens
        prompt_tokens = parsed.prompt_tokens

        if prompt_tokens < 0:
            assumed_max = max_total if max_total > 0 else published_max
            estimated = math.floor(len(prompt) / self.settings.chars_per_token_estimate)
            prompt_tokens = max(estimated, assumed_max + 1)

        if max_total <= 0:
            max_total = published_max

        usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=max(parsed.completion_tokens, 0),
            max_total_tokens=max_total,
        )
        logger.debug(f"Reconciled token usage for '{model_key}' from error message: {usage}")
        return usage

    def _parse_error_message(
        self, error_text: str, patterns: tuple[ErrorMsgPattern, ...], published_max: int
    ) -> _ParsedCounts:
        for error_pattern in patterns:
            match = error_pattern.pattern.search(error_text)
            if match is None:
                continue

            if error_pattern.units == "tokens":
                return self._parse_token_counts(error_pattern, match)
            return self._parse_char_counts(match, published_max)

        return _ParsedCounts()

    @staticmethod
    def _parse_token_counts(error_pattern: ErrorMsgPattern, match: re.Match[str]) -> _ParsedCounts:
        groups = [int(group) if group is not None else -1 for group in match.groups()]
        groups += [-1] * (3 - len(groups))

        if error_pattern.max_first:
            max_total, prompt, completion = groups[0], groups[1], groups[2]
        else:
            prompt, max_total, completion = groups[0], groups[1], groups[2]

        return _ParsedCounts(
            max_total_tokens=max_total,
            prompt_tokens=prompt,
            completion_tokens=completion if completion >= 0 else 0,
        )

    @staticmethod
    def _parse_char_counts(match: re.Match[str], published_max: int) -> _ParsedCounts:
        if len(match.groups()) < 2 or None in match.groups()[:2]:
            return _ParsedCounts()

        chars_limit = int(match.group(1))
        chars_prompt = int(match.group(2))
        if chars_limit <= 0:
            return _ParsedCounts()

        # The message reports an overflow, so the estimate must exceed the limit
        derived = math.ceil((chars_prompt / chars_limit) * published_max)
        return _ParsedCounts(
            max_total_tokens=published_max,
            prompt_tokens=max(derived, published_max + 1),
        )
