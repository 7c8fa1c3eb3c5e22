"""
llmbridge provider layer.

Resilience core shared by every provider integration:
- Model metadata registry
- Error description and per-family classification
- Token usage reconciliation from metadata or error messages
- Prompt size reduction
- JSON post-processing of completions
- Invocation outcome tracking
- Escalation decisions for the router
"""

from llmbridge.providers.classifiers import (
    check_finish_reason,
    classify,
    is_incomplete_response,
)
from llmbridge.providers.escalation import (
    EscalationAttempt,
    EscalationHandler,
    NextAction,
    decide_next_action,
)
from llmbridge.providers.exceptions import (
    BadConfigurationError,
    BadResponseContentError,
    BadResponseMetadataError,
    ErrorDescription,
    ErrorKind,
    LLMBridgeError,
    MetadataValidationError,
    RejectionResponseError,
    describe_error,
)
from llmbridge.providers.invocation import (
    LLMInvoker,
    ProviderAdapter,
    ProviderResponse,
    create_invoker,
)
from llmbridge.providers.models import (
    UNSPECIFIED_MODEL,
    ErrorClass,
    InvocationOutcome,
    LLMPurpose,
    ModelDescriptor,
    ModelQuality,
    ModelSet,
    PostProcessResult,
    ProviderFamily,
    ProviderType,
    ResponseStatus,
    StatsCategoryStatus,
    TokenUsage,
)
from llmbridge.providers.patterns import ErrorMsgPattern, error_patterns_for
from llmbridge.providers.postprocess import (
    convert_text_to_json,
    post_process,
    validate_structured_response,
)
from llmbridge.providers.reducer import (
    PromptAdaptationStrategy,
    PromptAdapter,
    TokenLimitReductionStrategy,
    reduce_prompt,
)
from llmbridge.providers.registry import ModelRegistry, load_model_catalog, resolve_family
from llmbridge.providers.stats import LLMStats, StatsCategory
from llmbridge.providers.tokens import TokenUsageReconciler

__all__ = [
    # Models
    "LLMPurpose",
    "ProviderFamily",
    "ProviderType",
    "ModelQuality",
    "ResponseStatus",
    "ErrorClass",
    "ModelDescriptor",
    "ModelSet",
    "TokenUsage",
    "InvocationOutcome",
    "PostProcessResult",
    "StatsCategoryStatus",
    "UNSPECIFIED_MODEL",
    # Exceptions
    "LLMBridgeError",
    "MetadataValidationError",
    "BadConfigurationError",
    "BadResponseContentError",
    "BadResponseMetadataError",
    "RejectionResponseError",
    "ErrorKind",
    "ErrorDescription",
    "describe_error",
    # Classification
    "classify",
    "check_finish_reason",
    "is_incomplete_response",
    "ErrorMsgPattern",
    "error_patterns_for",
    # Registry
    "ModelRegistry",
    "load_model_catalog",
    "resolve_family",
    # Tokens
    "TokenUsageReconciler",
    "PromptAdaptationStrategy",
    "TokenLimitReductionStrategy",
    "PromptAdapter",
    "reduce_prompt",
    # Responses
    "convert_text_to_json",
    "post_process",
    "validate_structured_response",
    # Invocation
    "ProviderResponse",
    "ProviderAdapter",
    "LLMInvoker",
    "create_invoker",
    # Escalation
    "NextAction",
    "decide_next_action",
    "EscalationAttempt",
    "EscalationHandler",
    # Stats
    "LLMStats",
    "StatsCategory",
]
