"""
Per-attempt LLM invocation for llmbridge.

LLMInvoker sends one request through a provider adapter and turns whatever
comes back (a response, a truncated response, or an exception) into an
InvocationOutcome the router can act on. Fatal errors propagate unchanged.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from llmbridge.config.loader import get_config
from llmbridge.config.schema import Config, ResilienceConfig
from llmbridge.logging_utils import (
    configure_logging,
    get_error_text,
    log_error_with_context,
    log_with_context,
)
from llmbridge.providers.classifiers import check_finish_reason, is_incomplete_response
from llmbridge.providers.exceptions import BadConfigurationError
from llmbridge.providers.models import (
    ErrorClass,
    InvocationOutcome,
    LLMPurpose,
    ModelQuality,
    ModelSet,
    ProviderFamily,
    ResponseStatus,
)
from llmbridge.providers.postprocess import post_process
from llmbridge.providers.registry import ModelRegistry, load_model_catalog, resolve_family
from llmbridge.providers.stats import LLMStats
from llmbridge.providers.tokens import TokenUsageReconciler

logger = logging.getLogger(__name__)

JSON_PARSE_ERROR_KEY = "json_parse_error"


@dataclass(frozen=True)
class ProviderResponse:
    """Fields a provider integration extracts from a vendor response."""

    content: Any
    finish_reason: str | None = None
    # None or a negative value means the provider did not report the count
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    max_total_tokens: int | None = None


@runtime_checkable
class ProviderAdapter(Protocol):
    """Capabilities a provider integration supplies."""

    family: ProviderFamily

    async def invoke(
        self, purpose: LLMPurpose, provider_model_id: str, prompt: str
    ) -> ProviderResponse: ...

    def classify_error(self, error: BaseException) -> ErrorClass: ...

    def describe_models(self) -> list[str]: ...

    async def close(self) -> None: ...


class LLMInvoker:
    """
    Runs single invocation attempts against one provider family.

    The retry loop, backoff and model escalation belong to the caller; this
    class only reports what happened on each attempt.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        registry: ModelRegistry,
        model_set: ModelSet,
        settings: ResilienceConfig | None = None,
    ):
        self.adapter = adapter
        self.registry = registry
        self.model_set = model_set
        self.reconciler = TokenUsageReconciler(registry, settings)

    async def generate_embeddings(
        self, text: str, context: Mapping[str, Any] | None = None
    ) -> InvocationOutcome:
        """
        Request an embedding vector for text.

        Args:
            text: Text to embed.
            context: Caller key/value pairs echoed back on the outcome.

        Returns:
            Outcome of the attempt.
        """
        return await self._invoke(
            LLMPurpose.EMBEDDINGS, self.model_set.embeddings, text, False, context
        )

    async def execute_completion(
        self,
        prompt: str,
        want_json: bool = False,
        context: Mapping[str, Any] | None = None,
        quality: ModelQuality = ModelQuality.PRIMARY,
    ) -> InvocationOutcome:
        """
        Request a completion for a prompt.

        Args:
            prompt: Prompt text.
            want_json: Parse the completion into a JSON object.
            context: Caller key/value pairs echoed back on the outcome.
            quality: Which completion model of the set to use.

        Returns:
            Outcome of the attempt.

        Raises:
            BadConfigurationError: If no model is configured for the quality.
        """
        model_key = self.model_set.completion_key(quality)
        if not model_key:
            raise BadConfigurationError(
                f"No {quality.value} completion model configured for {self.adapter.family.value}"
            )
        return await self._invoke(LLMPurpose.COMPLETIONS, model_key, prompt, want_json, context)

    async def _invoke(
        self,
        purpose: LLMPurpose,
        model_key: str,
        request: str,
        want_json: bool,
        context: Mapping[str, Any] | None,
    ) -> InvocationOutcome:
        outcome_context: dict[str, Any] = dict(context or {})
        descriptor = self.registry.get(model_key)
        family = self.adapter.family

        try:
            response = await self.adapter.invoke(purpose, descriptor.provider_model_id, request)
            check_finish_reason(family, response.finish_reason)

            if is_incomplete_response(family, response.finish_reason, response.content, purpose):
                usage = self.reconciler.from_metadata(
                    model_key,
                    response.prompt_tokens,
                    response.completion_tokens,
                    response.max_total_tokens,
                )
                logger.debug(f"Incomplete response from '{model_key}': {usage}")
                return InvocationOutcome(
                    status=ResponseStatus.EXCEEDED,
                    request=request,
                    model_key=model_key,
                    context=outcome_context,
                    token_usage=usage,
                    error_class=ErrorClass.TOKEN_EXCEEDED,
                )

            result = post_process(response.content, purpose, want_json)
            if result.error:
                outcome_context[JSON_PARSE_ERROR_KEY] = result.error
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Unusable completion from '{descriptor.provider_model_id}'",
                    outcome_context,
                )

            return InvocationOutcome(
                status=result.status,
                request=request,
                model_key=model_key,
                context=outcome_context,
                generated=result.generated,
            )

        except Exception as error:
            error_class = self.adapter.classify_error(error)

            if error_class is ErrorClass.OVERLOADED:
                logger.debug(f"'{model_key}' overloaded: {get_error_text(error)}")
                return InvocationOutcome(
                    status=ResponseStatus.OVERLOADED,
                    request=request,
                    model_key=model_key,
                    context=outcome_context,
                    error_class=error_class,
                )

            if error_class is ErrorClass.TOKEN_EXCEEDED:
                usage = self.reconciler.from_error_message(
                    model_key, request, get_error_text(error)
                )
                logger.debug(f"'{model_key}' token limit exceeded: {usage}")
                return InvocationOutcome(
                    status=ResponseStatus.EXCEEDED,
                    request=request,
                    model_key=model_key,
                    context=outcome_context,
                    token_usage=usage,
                    error_class=error_class,
                )

            log_error_with_context(logger, error, outcome_context)
            raise

    def describe_models(self) -> list[str]:
        """Provider model ids for embeddings, primary and secondary completions."""
        return self.registry.describe_models(self.model_set)

    async def close(self) -> None:
        await self.adapter.close()


def create_invoker(
    adapter: ProviderAdapter,
    config: Config | None = None,
    registry: ModelRegistry | None = None,
) -> tuple[LLMInvoker, LLMStats]:
    """
    Build an invoker and its stats tracker from configuration.

    Configures the package logger at config.logging_level, loads the model
    catalog unless a registry is given, and picks the model set of the
    configured family (the adapter's family when none is configured).

    Args:
        adapter: Provider integration to invoke through.
        config: Configuration; the process-wide config when omitted.
        registry: Preloaded registry; loaded from config.catalog when omitted.

    Returns:
        The invoker and a stats tracker honoring config.stats.

    Raises:
        BadConfigurationError: If the configured family is unknown, has no
            model set, or differs from the adapter's family.
    """
    config = config or get_config()
    configure_logging(config.logging_level)

    if registry is None:
        registry = load_model_catalog(config)

    family = resolve_family(config.family) if config.family else adapter.family
    if family is not adapter.family:
        raise BadConfigurationError(
            f"Configured family '{family.value}' does not match the adapter's "
            f"'{adapter.family.value}'"
        )

    invoker = LLMInvoker(adapter, registry, registry.model_set(family), config.resilience)
    stats = LLMStats(print_ticks=config.stats.print_ticks)
    logger.info(f"Invoker ready for {family.value}: {', '.join(invoker.describe_models())}")
    return invoker, stats
