"""
Escalation primitives for llmbridge.

Decides what a router should do after an unsuccessful attempt (switch to
the next candidate model, crop the prompt, or give up) and keeps track of
the attempts made for one request.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from llmbridge.logging_utils import log_with_context
from llmbridge.providers.exceptions import RejectionResponseError
from llmbridge.providers.models import InvocationOutcome, ModelQuality, ResponseStatus, TokenUsage
from llmbridge.providers.reducer import PromptAdapter
from llmbridge.providers.stats import LLMStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NextAction:
    """What to do after an unsuccessful attempt."""

    should_terminate: bool = False
    should_crop_prompt: bool = False
    should_switch_model: bool = False


def decide_next_action(
    outcome: InvocationOutcome | None,
    current_index: int,
    total_candidates: int,
    context: Mapping[str, Any] | None = None,
    resource_name: str = "",
) -> NextAction:
    """
    Decide the next step after an unsuccessful attempt.

    Overloaded (or missing) outcomes switch to the next candidate when one
    remains and otherwise terminate. Exceeded outcomes switch when possible
    and otherwise crop the prompt for the same candidate.

    Args:
        outcome: Outcome of the last attempt, None if no attempt completed.
        current_index: Index of the candidate just used.
        total_candidates: Number of candidates available.
        context: Caller context, for logging.
        resource_name: Name of the thing being processed, for error messages.

    Returns:
        The next action.

    Raises:
        RejectionResponseError: If the outcome status has no recovery path.
    """
    can_switch = current_index + 1 < total_candidates

    if outcome is None or outcome.status is ResponseStatus.OVERLOADED:
        log_with_context(
            logger,
            logging.INFO,
            "LLM could not process the prompt because it is overloaded, timing out or "
            "returning invalid JSON, even after retries",
            context,
        )
        return NextAction(should_terminate=not can_switch, should_switch_model=can_switch)

    if outcome.status is ResponseStatus.EXCEEDED:
        usage = outcome.token_usage
        log_with_context(
            logger,
            logging.INFO,
            f"LLM prompt tokens {usage.prompt_tokens if usage else 0} plus completion tokens "
            f"{usage.completion_tokens if usage else 0} exceeded the total token limit of "
            f"{usage.max_total_tokens if usage else 0} or the completion token limit",
            context,
        )
        return NextAction(should_crop_prompt=not can_switch, should_switch_model=can_switch)

    raise RejectionResponseError(
        f"Unexpected status while processing LLM invocation for '{resource_name}': "
        f"'{outcome.status.value}'",
        reason=outcome.status.value,
    )


@dataclass
class EscalationAttempt:
    """Record of one attempt."""

    model_key: str
    status: ResponseStatus
    token_usage: TokenUsage | None = None


@dataclass
class EscalationHandler:
    """
    Applies escalation decisions for one request.

    Walks an ordered list of completion qualities, crops the prompt when no
    larger candidate remains, and records every decision in the stats tracker.
    """

    candidates: list[ModelQuality]
    stats: LLMStats
    prompt_adapter: PromptAdapter
    resource_name: str = ""
    current_index: int = 0
    attempts: list[EscalationAttempt] = field(default_factory=list)

    @property
    def current_quality(self) -> ModelQuality:
        return self.candidates[self.current_index]

    @property
    def has_more_candidates(self) -> bool:
        """Check if a candidate after the current one exists."""
        return self.current_index + 1 < len(self.candidates)

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    def record_success(self, outcome: InvocationOutcome) -> None:
        self._record_attempt(outcome)
        self.stats.record_success()
        logger.debug(f"Model {outcome.model_key} succeeded")

    def record_retry(self, outcome: InvocationOutcome) -> None:
        """Record an overloaded attempt that will be retried as-is."""
        self._record_attempt(outcome)
        self.stats.record_retry()

    def handle_unsuccessful(
        self,
        outcome: InvocationOutcome | None,
        prompt: str,
        context: Mapping[str, Any] | None = None,
    ) -> str | None:
        """
        Apply the next action for an unsuccessful attempt.

        Args:
            outcome: Outcome of the last attempt, None if no attempt completed.
            prompt: Prompt used for the last attempt.
            context: Caller context, for logging.

        Returns:
            The prompt for the next attempt (cropped when required), or None
            when the request should be given up.

        Raises:
            RejectionResponseError: If the outcome status has no recovery path.
            BadResponseMetadataError: If cropping is needed but the outcome
                carries no token usage.
        """
        if outcome is not None:
            self._record_attempt(outcome)

        action = decide_next_action(
            outcome, self.current_index, len(self.candidates), context, self.resource_name
        )

        if action.should_terminate:
            self.stats.record_failure()
            return None

        if action.should_crop_prompt and outcome is not None:
            cropped = self.prompt_adapter.adapt_prompt_from_outcome(prompt, outcome)
            self.stats.record_crop()
            if not cropped.strip():
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Prompt became empty after cropping for '{self.resource_name}', giving up",
                    context,
                )
                self.stats.record_failure()
                return None
            return cropped

        if action.should_switch_model:
            self.current_index += 1
            self.stats.record_switch()
            logger.info(f"Switching to {self.current_quality.value} completion model")

        return prompt

    def _record_attempt(self, outcome: InvocationOutcome) -> None:
        self.attempts.append(
            EscalationAttempt(
                model_key=outcome.model_key,
                status=outcome.status,
                token_usage=outcome.token_usage,
            )
        )

    def reset(self) -> None:
        """Reset escalation state for a new request."""
        self.current_index = 0
        self.attempts.clear()

    def get_attempt_summary(self) -> str:
        """
        Get a human-readable summary of the attempts made.

        Returns:
            Summary string describing which models were tried.
        """
        if not self.attempts:
            return "No attempts"

        lines = []
        for attempt in self.attempts:
            line = f"  - {attempt.model_key}: {attempt.status.value}"
            if attempt.token_usage:
                usage = attempt.token_usage
                line += (
                    f" (prompt {usage.prompt_tokens}, completion {usage.completion_tokens}, "
                    f"limit {usage.max_total_tokens})"
                )
            lines.append(line)

        return "Attempts:\n" + "\n".join(lines)
