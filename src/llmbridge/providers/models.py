"""
Provider data models for llmbridge.

Defines the enumerations, model descriptors and per-attempt result types
shared by every part of the resilience layer.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class LLMPurpose(str, Enum):
    """What a model is used for."""

    EMBEDDINGS = "embeddings"
    COMPLETIONS = "completions"
    N_A = "n/a"


class ProviderType(str, Enum):
    """API style shared by a group of provider families."""

    OPENAI = "openai"
    BEDROCK = "bedrock"
    VERTEXAI = "vertexai"
    N_A = "n/a"


class ProviderFamily(str, Enum):
    """Provider family a model is served through."""

    OPENAI = "openai"
    AZURE_OPENAI = "azure_openai"
    VERTEXAI_GEMINI = "vertexai_gemini"
    BEDROCK_TITAN = "bedrock_titan"
    BEDROCK_CLAUDE = "bedrock_claude"
    BEDROCK_LLAMA = "bedrock_llama"
    BEDROCK_MISTRAL = "bedrock_mistral"
    BEDROCK_NOVA = "bedrock_nova"
    BEDROCK_DEEPSEEK = "bedrock_deepseek"
    N_A = "n/a"

    @property
    def provider_type(self) -> ProviderType:
        """API style used to classify this family's errors."""
        if self in (ProviderFamily.OPENAI, ProviderFamily.AZURE_OPENAI):
            return ProviderType.OPENAI
        if self is ProviderFamily.VERTEXAI_GEMINI:
            return ProviderType.VERTEXAI
        if self is ProviderFamily.N_A:
            return ProviderType.N_A
        return ProviderType.BEDROCK


class ModelQuality(str, Enum):
    """Completion model tier within a model set."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class ResponseStatus(str, Enum):
    """Outcome of a single invocation attempt."""

    UNKNOWN = "unknown"
    COMPLETED = "completed"
    EXCEEDED = "exceeded"
    OVERLOADED = "overloaded"


class ErrorClass(str, Enum):
    """Three-way classification of a provider failure."""

    OVERLOADED = "overloaded"
    TOKEN_EXCEEDED = "token_exceeded"
    FATAL = "fatal"


# Key and limit of the descriptor returned for unconfigured model keys
UNSPECIFIED_MODEL_KEY = "UNSPECIFIED"
UNSPECIFIED_MAX_TOTAL_TOKENS = 999_999_999


@dataclass(frozen=True)
class ModelDescriptor:
    """Static capability facts for one model."""

    key: str
    provider_model_id: str
    purpose: LLMPurpose
    max_total_tokens: int
    family: ProviderFamily
    max_completion_tokens: int | None = None  # Completions only
    dimensions: int | None = None  # Embeddings only

    @property
    def is_unspecified(self) -> bool:
        return self.key == UNSPECIFIED_MODEL_KEY


UNSPECIFIED_MODEL = ModelDescriptor(
    key=UNSPECIFIED_MODEL_KEY,
    provider_model_id="n/a",
    purpose=LLMPurpose.N_A,
    max_total_tokens=UNSPECIFIED_MAX_TOTAL_TOKENS,
    family=ProviderFamily.N_A,
)


@dataclass(frozen=True)
class ModelSet:
    """Model keys a provider family uses for each kind of request."""

    embeddings: str
    primary_completion: str
    secondary_completion: str | None = None

    def completion_key(self, quality: ModelQuality) -> str | None:
        """Model key configured for a completion quality, if any."""
        if quality is ModelQuality.PRIMARY:
            return self.primary_completion
        return self.secondary_completion


@dataclass(frozen=True)
class TokenUsage:
    """Resolved token counts for one invocation attempt."""

    prompt_tokens: int
    completion_tokens: int
    max_total_tokens: int

    def __post_init__(self) -> None:
        for name in ("prompt_tokens", "completion_tokens", "max_total_tokens"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be resolved to a non-negative value")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def is_over_limit(self) -> bool:
        return self.total_tokens > self.max_total_tokens


@dataclass(frozen=True)
class InvocationOutcome:
    """
    Result of one invocation attempt.

    Carries the request text, the model used and the caller's context.
    COMPLETED outcomes carry the generated content; EXCEEDED outcomes carry
    the reconciled token usage.
    """

    status: ResponseStatus
    request: str
    model_key: str
    context: Mapping[str, Any] = field(default_factory=dict)
    generated: Any = None
    token_usage: TokenUsage | None = None
    error_class: ErrorClass | None = None

    def __post_init__(self) -> None:
        # Detach from the caller's mapping so the outcome cannot change later
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    @property
    def is_success(self) -> bool:
        return self.status is ResponseStatus.COMPLETED


@dataclass(frozen=True)
class PostProcessResult:
    """Status and content produced by the response post-processor."""

    status: ResponseStatus
    generated: Any = None
    error: str | None = None  # Parse failure text for soft failures


@dataclass
class StatsCategoryStatus:
    """Display metadata and current count for one tracked category."""

    description: str
    symbol: str
    count: int = 0
