"""
Unit tests for single-attempt LLM invocation.
"""

import logging

import pytest

from llmbridge.config import Config, ResilienceConfig, StatsConfig
from llmbridge.providers import (
    BadConfigurationError,
    ErrorClass,
    LLMInvoker,
    LLMPurpose,
    ModelQuality,
    ProviderAdapter,
    ProviderFamily,
    ProviderResponse,
    RejectionResponseError,
    ResponseStatus,
    TokenUsage,
    classify,
    create_invoker,
)
from llmbridge.providers.invocation import JSON_PARSE_ERROR_KEY


class FakeAdapter:
    """Provider adapter that replays scripted responses or errors."""

    def __init__(self, family: ProviderFamily, *responses):
        self.family = family
        self.responses = list(responses)
        self.calls: list[tuple[LLMPurpose, str, str]] = []
        self.closed = False

    async def invoke(self, purpose, provider_model_id, prompt):
        self.calls.append((purpose, provider_model_id, prompt))
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def classify_error(self, error):
        return classify(error, self.family)

    def describe_models(self):
        return []

    async def close(self):
        self.closed = True


class StatusError(Exception):
    """Provider error carrying an HTTP status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def _invoker(registry, adapter: FakeAdapter) -> LLMInvoker:
    return LLMInvoker(adapter, registry, registry.model_set(adapter.family))


# =============================================================================
# Completion Tests
# =============================================================================


class TestExecuteCompletion:
    """Tests for LLMInvoker.execute_completion."""

    @pytest.mark.asyncio
    async def test_text_completion(self, registry):
        """Test a finished completion is returned as COMPLETED."""
        adapter = FakeAdapter(ProviderFamily.OPENAI, ProviderResponse("hello", "stop", 10, 2))
        invoker = _invoker(registry, adapter)

        outcome = await invoker.execute_completion("say hello", context={"resource": "a.py"})

        assert outcome.status is ResponseStatus.COMPLETED
        assert outcome.is_success
        assert outcome.generated == "hello"
        assert outcome.request == "say hello"
        assert outcome.model_key == "GPT_COMPLETIONS_GPT4"
        assert outcome.context == {"resource": "a.py"}
        assert adapter.calls == [(LLMPurpose.COMPLETIONS, "gpt-4", "say hello")]

    @pytest.mark.asyncio
    async def test_json_completion(self, registry):
        """Test JSON completions are parsed."""
        adapter = FakeAdapter(
            ProviderFamily.OPENAI, ProviderResponse('Result: {"score": 3}', "stop")
        )

        outcome = await _invoker(registry, adapter).execute_completion("rate", want_json=True)

        assert outcome.generated == {"score": 3}

    @pytest.mark.asyncio
    async def test_bad_json_is_overloaded(self, registry):
        """Test unparseable JSON is a soft failure with the parse error in context."""
        adapter = FakeAdapter(ProviderFamily.OPENAI, ProviderResponse("not json", "stop"))
        context = {"resource": "a.py"}

        outcome = await _invoker(registry, adapter).execute_completion(
            "rate", want_json=True, context=context
        )

        assert outcome.status is ResponseStatus.OVERLOADED
        assert outcome.context[JSON_PARSE_ERROR_KEY].startswith("BadResponseContentError:")
        assert outcome.context["resource"] == "a.py"
        assert context == {"resource": "a.py"}

    @pytest.mark.asyncio
    async def test_bad_json_logs_one_warning(self, registry, caplog):
        """Test a parse failure produces a single warning carrying the context."""
        adapter = FakeAdapter(ProviderFamily.OPENAI, ProviderResponse("not json", "stop"))

        with caplog.at_level(logging.DEBUG, logger="llmbridge"):
            await _invoker(registry, adapter).execute_completion(
                "rate", want_json=True, context={"resource": "a.py"}
            )

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "* resource: a.py" in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_secondary_quality(self, registry):
        """Test the secondary completion model is used on request."""
        adapter = FakeAdapter(ProviderFamily.OPENAI, ProviderResponse("ok", "stop"))

        outcome = await _invoker(registry, adapter).execute_completion(
            "prompt", quality=ModelQuality.SECONDARY
        )

        assert outcome.model_key == "GPT_COMPLETIONS_GPT4_32k"
        assert adapter.calls[0][1] == "gpt-4-32k"

    @pytest.mark.asyncio
    async def test_missing_secondary_quality(self, registry):
        """Test requesting an unconfigured quality raises before invoking."""
        adapter = FakeAdapter(ProviderFamily.BEDROCK_CLAUDE)

        with pytest.raises(BadConfigurationError):
            await _invoker(registry, adapter).execute_completion(
                "prompt", quality=ModelQuality.SECONDARY
            )
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_truncated_completion_is_exceeded(self, registry):
        """Test a completion cut at the length limit reports reconciled usage."""
        adapter = FakeAdapter(
            ProviderFamily.OPENAI, ProviderResponse("partial", "length", 4000, 4096, None)
        )

        outcome = await _invoker(registry, adapter).execute_completion("prompt")

        assert outcome.status is ResponseStatus.EXCEEDED
        assert outcome.error_class is ErrorClass.TOKEN_EXCEEDED
        assert outcome.generated is None
        assert outcome.token_usage == TokenUsage(
            prompt_tokens=4000, completion_tokens=4096, max_total_tokens=8192
        )

    @pytest.mark.asyncio
    async def test_empty_completion_is_exceeded(self, registry):
        """Test empty content with unknown counts assumes an overflow."""
        adapter = FakeAdapter(ProviderFamily.BEDROCK_CLAUDE, ProviderResponse("", "end_turn"))

        outcome = await _invoker(registry, adapter).execute_completion("prompt")

        assert outcome.status is ResponseStatus.EXCEEDED
        assert outcome.token_usage == TokenUsage(
            prompt_tokens=200001, completion_tokens=0, max_total_tokens=200000
        )

    @pytest.mark.asyncio
    async def test_vertexai_safety_stop_raises(self, registry):
        """Test a safety stop is rejected rather than retried."""
        adapter = FakeAdapter(ProviderFamily.VERTEXAI_GEMINI, ProviderResponse("text", "SAFETY"))

        with pytest.raises(RejectionResponseError):
            await _invoker(registry, adapter).execute_completion("prompt")

    @pytest.mark.asyncio
    async def test_vertexai_recitation_stop_is_overloaded(self, registry):
        """Test a recitation stop is retried like an overload."""
        adapter = FakeAdapter(
            ProviderFamily.VERTEXAI_GEMINI, ProviderResponse("text", "RECITATION")
        )

        outcome = await _invoker(registry, adapter).execute_completion("prompt")

        assert outcome.status is ResponseStatus.OVERLOADED


# =============================================================================
# Error Handling Tests
# =============================================================================


class TestInvocationErrors:
    """Tests for provider error handling."""

    @pytest.mark.asyncio
    async def test_overloaded_error(self, registry):
        """Test rate limiting becomes an OVERLOADED outcome."""
        adapter = FakeAdapter(ProviderFamily.OPENAI, StatusError("Rate limit reached", 429))

        outcome = await _invoker(registry, adapter).execute_completion("prompt")

        assert outcome.status is ResponseStatus.OVERLOADED
        assert outcome.error_class is ErrorClass.OVERLOADED
        assert outcome.token_usage is None

    @pytest.mark.asyncio
    async def test_token_limit_error(self, registry):
        """Test a context length error becomes EXCEEDED with parsed usage."""
        error = StatusError(
            "This model's maximum context length is 8192 tokens. However, your messages "
            "resulted in 8545 tokens. Please reduce the length of the messages.",
            400,
        )
        adapter = FakeAdapter(ProviderFamily.OPENAI, error)

        outcome = await _invoker(registry, adapter).execute_completion("prompt")

        assert outcome.status is ResponseStatus.EXCEEDED
        assert outcome.token_usage == TokenUsage(
            prompt_tokens=8545, completion_tokens=0, max_total_tokens=8192
        )

    @pytest.mark.asyncio
    async def test_fatal_error_propagates_unchanged(self, registry, caplog):
        """Test unrecognized errors are re-raised as the same object."""
        error = StatusError("Incorrect API key provided", 401)
        adapter = FakeAdapter(ProviderFamily.OPENAI, error)

        with pytest.raises(StatusError) as exc_info:
            await _invoker(registry, adapter).execute_completion(
                "prompt", context={"resource": "a.py"}
            )

        assert exc_info.value is error
        assert "Incorrect API key provided" in caplog.text


# =============================================================================
# Embeddings Tests
# =============================================================================


class TestGenerateEmbeddings:
    """Tests for LLMInvoker.generate_embeddings."""

    @pytest.mark.asyncio
    async def test_embeddings(self, registry):
        """Test a vector is returned unchanged."""
        adapter = FakeAdapter(ProviderFamily.VERTEXAI_GEMINI, ProviderResponse([0.1, 0.2]))

        outcome = await _invoker(registry, adapter).generate_embeddings("text")

        assert outcome.status is ResponseStatus.COMPLETED
        assert outcome.generated == [0.1, 0.2]
        assert adapter.calls == [(LLMPurpose.EMBEDDINGS, "text-embedding-005", "text")]

    @pytest.mark.asyncio
    async def test_empty_embeddings_exceeded(self, registry):
        """Test an empty vector is treated as an overflow."""
        adapter = FakeAdapter(ProviderFamily.BEDROCK_CLAUDE, ProviderResponse([]))

        outcome = await _invoker(registry, adapter).generate_embeddings("text")

        assert outcome.status is ResponseStatus.EXCEEDED
        assert outcome.token_usage.max_total_tokens == 8192


class TestInvokerLifecycle:
    """Tests for adapter conformance and lifecycle."""

    def test_fake_adapter_matches_protocol(self):
        """Test the adapter protocol is satisfied structurally."""
        assert isinstance(FakeAdapter(ProviderFamily.OPENAI), ProviderAdapter)

    def test_describe_models(self, registry):
        """Test model ids are listed for the invoker's model set."""
        invoker = _invoker(registry, FakeAdapter(ProviderFamily.BEDROCK_LLAMA))

        assert invoker.describe_models() == [
            "amazon.titan-embed-text-v1",
            "us.meta.llama3-3-70b-instruct-v1:0",
            "n/a",
        ]

    @pytest.mark.asyncio
    async def test_close(self, registry):
        """Test closing the invoker closes the adapter."""
        adapter = FakeAdapter(ProviderFamily.OPENAI)

        await _invoker(registry, adapter).close()

        assert adapter.closed


# =============================================================================
# Bootstrap Tests
# =============================================================================


class TestCreateInvoker:
    """Tests for create_invoker."""

    def test_wires_configuration(self, registry, package_logger):
        """Test resilience, stats and logging settings reach the built objects."""
        config = Config(
            family="openai",
            logging_level="DEBUG",
            resilience=ResilienceConfig(chars_per_token_estimate=3.5),
            stats=StatsConfig(print_ticks=False),
        )

        invoker, stats = create_invoker(FakeAdapter(ProviderFamily.OPENAI), config, registry)

        assert invoker.model_set == registry.model_set(ProviderFamily.OPENAI)
        assert invoker.reconciler.settings is config.resilience
        assert invoker.reconciler.settings.chars_per_token_estimate == 3.5
        assert stats.print_ticks is False
        assert package_logger.level == logging.DEBUG

    def test_family_defaults_to_adapter(self, registry, package_logger):
        """Test the adapter's family is used when none is configured."""
        invoker, _ = create_invoker(FakeAdapter(ProviderFamily.BEDROCK_LLAMA), Config(), registry)

        assert invoker.model_set == registry.model_set(ProviderFamily.BEDROCK_LLAMA)

    def test_family_mismatch(self, registry, package_logger):
        """Test a configured family must match the adapter."""
        config = Config(family="bedrock_claude")

        with pytest.raises(BadConfigurationError, match="does not match"):
            create_invoker(FakeAdapter(ProviderFamily.OPENAI), config, registry)

    def test_family_without_model_set(self, registry, package_logger):
        """Test a family missing from the catalog raises."""
        with pytest.raises(BadConfigurationError):
            create_invoker(FakeAdapter(ProviderFamily.BEDROCK_NOVA), Config(), registry)

    def test_loads_packaged_catalog(self, package_logger):
        """Test the catalog is loaded from configuration when no registry is given."""
        config = Config(family="bedrock_claude")

        invoker, _ = create_invoker(FakeAdapter(ProviderFamily.BEDROCK_CLAUDE), config)

        assert invoker.model_set.primary_completion in invoker.registry
