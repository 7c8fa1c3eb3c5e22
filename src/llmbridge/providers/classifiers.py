"""
Error classification for llmbridge.

Maps a raw provider error to OVERLOADED, TOKEN_EXCEEDED or FATAL using one
pair of predicates per provider type, and decides whether a returned
response was cut short.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from llmbridge.providers.exceptions import (
    ErrorDescription,
    ErrorKind,
    RejectionResponseError,
    describe_error,
)
from llmbridge.providers.models import ErrorClass, LLMPurpose, ProviderFamily, ProviderType

logger = logging.getLogger(__name__)

ErrorPredicate = Callable[[ErrorDescription], bool]


@dataclass(frozen=True)
class ErrorPredicates:
    """Overload and token-limit recognizers for one provider type."""

    is_overloaded: ErrorPredicate
    is_token_limit_exceeded: ErrorPredicate


def _is_generic_overload(error: ErrorDescription) -> bool:
    return error.has_kind(ErrorKind.RATE_LIMITED, ErrorKind.UNAVAILABLE)


def _is_generic_token_limit(error: ErrorDescription) -> bool:
    return error.has_kind(ErrorKind.CONTEXT_WINDOW_EXCEEDED)


# =============================================================================
# OpenAI / Azure OpenAI
# =============================================================================


def _openai_overloaded(error: ErrorDescription) -> bool:
    if _is_generic_overload(error):
        return True
    if error.status_code in (429, 500, 503):
        return True
    return error.message_contains("rate limit", "too many requests")


def _openai_token_limit(error: ErrorDescription) -> bool:
    if _is_generic_token_limit(error) or error.code == "context_length_exceeded":
        return True
    is_bad_request = error.error_type == "invalid_request_error" or error.status_code == 400
    return is_bad_request and error.message_contains(
        "maximum context length", "token limit", "too long", "please reduce"
    )


# =============================================================================
# AWS Bedrock
# =============================================================================

BEDROCK_OVERLOAD_EXCEPTIONS = (
    "ThrottlingException",
    "ModelTimeoutException",
    "ServiceUnavailableException",
    "InternalServerException",
)

BEDROCK_TOKEN_LIMIT_FRAGMENTS = (
    "too many input tokens",
    "expected maxlength",
    "input is too long",
    "input length",
    "too large for model",
    "please reduce the length of the prompt",
    "maximum context length",
)


def _bedrock_overloaded(error: ErrorDescription) -> bool:
    return _is_generic_overload(error) or error.has_type(*BEDROCK_OVERLOAD_EXCEPTIONS)


def _bedrock_token_limit(error: ErrorDescription) -> bool:
    is_validation = error.has_type("ValidationException") or _is_generic_token_limit(error)
    return is_validation and error.message_contains(*BEDROCK_TOKEN_LIMIT_FRAGMENTS)


# =============================================================================
# Google Vertex AI
# =============================================================================

VERTEXAI_OVERLOAD_FRAGMENTS = (
    "429 too many requests",
    "resource exhausted",
    "reason given: recitation",
    "exception posting request to model",
)

# Finish reasons after which a Gemini response is unusable
VERTEXAI_REJECTION_FINISH_REASONS = frozenset(
    {"BLOCKLIST", "PROHIBITED_CONTENT", "RECITATION", "SAFETY", "SPII"}
)


def _vertexai_overloaded(error: ErrorDescription) -> bool:
    if _is_generic_overload(error) or error.status_code == 429:
        return True
    return error.message_contains(*VERTEXAI_OVERLOAD_FRAGMENTS)


def _vertexai_token_limit(error: ErrorDescription) -> bool:
    return _is_generic_token_limit(error) or error.message_contains(
        "exceeds the maximum number of tokens"
    )


_PREDICATES: dict[ProviderType, ErrorPredicates] = {
    ProviderType.OPENAI: ErrorPredicates(_openai_overloaded, _openai_token_limit),
    ProviderType.BEDROCK: ErrorPredicates(_bedrock_overloaded, _bedrock_token_limit),
    ProviderType.VERTEXAI: ErrorPredicates(_vertexai_overloaded, _vertexai_token_limit),
    ProviderType.N_A: ErrorPredicates(_is_generic_overload, _is_generic_token_limit),
}


def predicates_for(family: ProviderFamily) -> ErrorPredicates:
    """Get the predicate pair used for a provider family."""
    return _PREDICATES[family.provider_type]


def classify(error: BaseException | ErrorDescription, family: ProviderFamily) -> ErrorClass:
    """
    Classify a provider error.

    Authentication failures are fatal whatever their message says. After
    that the overload check runs first: some providers raise the same
    exception type for both conditions and only the message tells them apart.

    Args:
        error: The raised exception, or a description of it.
        family: Provider family that raised it.

    Returns:
        OVERLOADED, TOKEN_EXCEEDED or FATAL.
    """
    description = error if isinstance(error, ErrorDescription) else describe_error(error)
    predicates = predicates_for(family)

    if description.has_kind(ErrorKind.AUTHENTICATION):
        logger.debug(f"Authentication failure from {family.value}: {description.message}")
        return ErrorClass.FATAL
    if predicates.is_overloaded(description):
        return ErrorClass.OVERLOADED
    if predicates.is_token_limit_exceeded(description):
        return ErrorClass.TOKEN_EXCEEDED

    logger.debug(f"Unrecognized {family.value} error treated as fatal: {description.message}")
    return ErrorClass.FATAL


def check_finish_reason(family: ProviderFamily, finish_reason: str | None) -> None:
    """
    Reject responses the provider stopped for safety reasons.

    Args:
        family: Provider family that produced the response.
        finish_reason: Finish reason reported with the response.

    Raises:
        RejectionResponseError: If the finish reason marks the response unusable.
    """
    if family.provider_type is not ProviderType.VERTEXAI or not finish_reason:
        return
    reason = finish_reason.upper()
    if reason in VERTEXAI_REJECTION_FINISH_REASONS:
        raise RejectionResponseError(
            f"LLM response was not safely completed - reason given: {reason}", reason=reason
        )


def is_incomplete_response(
    family: ProviderFamily,
    finish_reason: str | None,
    content: Any,
    purpose: LLMPurpose = LLMPurpose.COMPLETIONS,
) -> bool:
    """
    Decide whether a returned response was cut short.

    Finish reasons are only meaningful for completions; an embeddings
    response is incomplete only when it is empty.

    Args:
        family: Provider family that produced the response.
        finish_reason: Finish reason reported with the response.
        content: Generated content.
        purpose: What the model was asked to do.

    Returns:
        True if the response should be treated as exceeding the token limit.
    """
    if content is None or content == "" or (isinstance(content, list) and not content):
        return True

    if purpose is not LLMPurpose.COMPLETIONS:
        return False

    reason = (finish_reason or "").lower()
    provider_type = family.provider_type

    if provider_type is ProviderType.OPENAI:
        return reason == "length"
    if provider_type is ProviderType.VERTEXAI:
        return reason != "stop"
    if provider_type is ProviderType.BEDROCK:
        return reason in ("length", "max_tokens")
    return False
