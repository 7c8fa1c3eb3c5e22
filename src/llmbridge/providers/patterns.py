"""
Error message patterns for token limit reporting.

Each provider type reports a limit overflow in its own wording. These tables
list, in priority order, the regular expressions that pull token or character
counts out of those messages.
"""

import re
from dataclasses import dataclass
from typing import Literal

from llmbridge.providers.models import ProviderFamily, ProviderType


@dataclass(frozen=True)
class ErrorMsgPattern:
    """
    A regular expression over a provider error message.

    For "tokens" units the captures are max total tokens, prompt tokens and
    completion tokens (only the first is mandatory). When max_first is False
    the first two captures are swapped. For "chars" units the captures are
    the character limit and the actual character count.
    """

    pattern: re.Pattern[str]
    units: Literal["tokens", "chars"]
    max_first: bool = True


OPENAI_ERROR_PATTERNS: tuple[ErrorMsgPattern, ...] = (
    # "This model's maximum context length is 8191 tokens, however you requested 10346 tokens
    # (10346 in your prompt; 5 for the completion). Please reduce your prompt; or completion length."
    ErrorMsgPattern(
        re.compile(r"max.*?(\d+) tokens.*?\(.*?(\d+).*?prompt.*?(\d+).*?completion"), "tokens"
    ),
    # "This model's maximum context length is 8192 tokens. However, your messages resulted in
    # 8545 tokens. Please reduce the length of the messages."
    ErrorMsgPattern(re.compile(r"max.*?(\d+) tokens.*?(\d+) "), "tokens"),
)

BEDROCK_ERROR_PATTERNS: tuple[ErrorMsgPattern, ...] = (
    # "ValidationException: 400 Bad Request: Too many input tokens. Max input tokens: 8192,
    # request input token count: 9279 "
    ErrorMsgPattern(
        re.compile(r"ax input tokens.*?(\d+).*?request input token count.*?(\d+)"), "tokens"
    ),
    # "ValidationException: Malformed input request: expected maxLength: 50000, actual: 52611,
    # please reformat your input and try again."
    ErrorMsgPattern(re.compile(r"maxLength.*?(\d+).*?actual.*?(\d+)"), "chars"),
    # "An error occurred (ValidationException) when calling the InvokeModel operation: This
    # model's maximum context length is 8192 tokens. Please reduce the length of the prompt"
    ErrorMsgPattern(re.compile(r"maximum context length is ?(\d+) tokens"), "tokens"),
)

VERTEXAI_ERROR_PATTERNS: tuple[ErrorMsgPattern, ...] = (
    # "400 The input token count (1100000) exceeds the maximum number of tokens allowed (1048576)."
    ErrorMsgPattern(
        re.compile(
            r"input token count \((\d+)\) exceeds the maximum number of tokens allowed \((\d+)\)"
        ),
        "tokens",
        max_first=False,
    ),
)

_PATTERNS_BY_PROVIDER_TYPE: dict[ProviderType, tuple[ErrorMsgPattern, ...]] = {
    ProviderType.OPENAI: OPENAI_ERROR_PATTERNS,
    ProviderType.BEDROCK: BEDROCK_ERROR_PATTERNS,
    ProviderType.VERTEXAI: VERTEXAI_ERROR_PATTERNS,
    ProviderType.N_A: (),
}


def error_patterns_for(family: ProviderFamily) -> tuple[ErrorMsgPattern, ...]:
    """
    Get the ordered error message patterns for a provider family.

    Args:
        family: Provider family.

    Returns:
        Patterns to try in order; the first match wins.
    """
    return _PATTERNS_BY_PROVIDER_TYPE[family.provider_type]
