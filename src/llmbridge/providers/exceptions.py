"""
Provider exceptions for llmbridge.

Defines the exception hierarchy raised by the resilience layer and the
structured description used to classify raw provider errors.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from litellm.exceptions import (
    APIConnectionError,
    AuthenticationError as LiteLLMAuthError,
    ContextWindowExceededError,
    InternalServerError,
    RateLimitError as LiteLLMRateLimitError,
    ServiceUnavailableError,
    Timeout,
)


class LLMBridgeError(Exception):
    """Base exception for llmbridge errors."""

    def __init__(self, message: str, *, detail: Any = None):
        super().__init__(message)
        self.detail = detail


class MetadataValidationError(LLMBridgeError):
    """Model catalog failed validation so no registry was built."""

    def __init__(self, message: str, model_key: str | None = None, field: str | None = None):
        super().__init__(message)
        self.model_key = model_key
        self.field = field


class BadConfigurationError(LLMBridgeError):
    """A request needs a model or setting that is not configured."""

    pass


class BadResponseContentError(LLMBridgeError):
    """Generated content could not be turned into the expected shape."""

    def __init__(self, message: str, content: Any = None):
        super().__init__(message, detail=content)
        self.content = content


class BadResponseMetadataError(LLMBridgeError):
    """An outcome lacks the metadata needed to act on it."""

    def __init__(self, message: str, outcome: Any = None):
        super().__init__(message, detail=outcome)
        self.outcome = outcome


class RejectionResponseError(LLMBridgeError):
    """The provider refused to produce a usable response."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


# =============================================================================
# Error Description
# =============================================================================


class ErrorKind(str, Enum):
    """Provider-neutral error kinds recognized from litellm's exceptions."""

    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    CONTEXT_WINDOW_EXCEEDED = "context_window_exceeded"
    AUTHENTICATION = "authentication"


@dataclass(frozen=True)
class ErrorDescription:
    """
    Structured view of a raw provider error.

    Classification works on this description rather than on vendor SDK
    exception classes, so any error with the right names, status or message
    can be classified without importing the SDK that raised it.
    """

    type_names: frozenset[str]
    message: str
    status_code: int | None = None
    code: str | None = None
    error_type: str | None = None
    kinds: frozenset[ErrorKind] = frozenset()

    def has_type(self, *names: str) -> bool:
        """Check whether any of the names is a type name or vendor code of the error."""
        return any(name in self.type_names for name in names)

    def has_kind(self, *kinds: ErrorKind) -> bool:
        return any(kind in self.kinds for kind in kinds)

    def message_contains(self, *fragments: str) -> bool:
        """Case-insensitive substring check against the error message."""
        lowered = self.message.lower()
        return any(fragment in lowered for fragment in fragments)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return int(value)
    return None


def _extract_status_code(error: BaseException) -> int | None:
    for attr in ("status_code", "status", "code"):
        status = _as_int(getattr(error, attr, None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        metadata = response.get("ResponseMetadata")
        if isinstance(metadata, dict):
            return _as_int(metadata.get("HTTPStatusCode"))
        return None

    return _as_int(getattr(response, "status_code", None))


def _extract_vendor_code(error: BaseException) -> str | None:
    # botocore ClientError keeps the service error name under response["Error"]["Code"]
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        vendor_error = response.get("Error")
        if isinstance(vendor_error, dict) and isinstance(vendor_error.get("Code"), str):
            return vendor_error["Code"]
    return None


def _error_kinds(error: BaseException) -> Iterable[ErrorKind]:
    if isinstance(error, LiteLLMRateLimitError):
        yield ErrorKind.RATE_LIMITED
    if isinstance(error, (ServiceUnavailableError, InternalServerError, Timeout, APIConnectionError)):
        yield ErrorKind.UNAVAILABLE
    if isinstance(error, ContextWindowExceededError):
        yield ErrorKind.CONTEXT_WINDOW_EXCEEDED
    if isinstance(error, LiteLLMAuthError):
        yield ErrorKind.AUTHENTICATION


def describe_error(error: BaseException) -> ErrorDescription:
    """
    Build a structured description of a raw provider error.

    Never raises: attributes that are missing or of an unexpected type are
    simply left out of the description.

    Args:
        error: The exception raised by a provider integration.

    Returns:
        ErrorDescription for classification.
    """
    type_names = {cls.__name__ for cls in type(error).__mro__}
    vendor_code = _extract_vendor_code(error)
    if vendor_code:
        type_names.add(vendor_code)

    code = getattr(error, "code", None)
    error_type = getattr(error, "type", None)

    return ErrorDescription(
        type_names=frozenset(type_names),
        message=str(error),
        status_code=_extract_status_code(error),
        code=code if isinstance(code, str) else vendor_code,
        error_type=error_type if isinstance(error_type, str) else None,
        kinds=frozenset(_error_kinds(error)),
    )
