"""
Response post-processing for llmbridge.

Turns raw completion text into parsed JSON when requested. Malformed JSON
is a soft failure: the attempt is reported as OVERLOADED so it can simply
be asked again.
"""

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ValidationError

from llmbridge.logging_utils import get_error_text
from llmbridge.providers.exceptions import BadResponseContentError
from llmbridge.providers.models import LLMPurpose, PostProcessResult, ResponseStatus

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1F]")


def convert_text_to_json(text: str) -> dict[str, Any]:
    """
    Extract the JSON object embedded in generated text.

    Takes everything from the first "{" to the last "}", treats control
    characters as whitespace and parses the result strictly.

    Args:
        text: Raw completion text.

    Returns:
        Parsed JSON object.

    Raises:
        BadResponseContentError: If no object can be found or parsed.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise BadResponseContentError("Generated content is not valid JSON: no object found", text)

    candidate = _CONTROL_CHARS.sub(" ", text[start : end + 1])
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise BadResponseContentError(f"Generated content is not valid JSON: {e}", text) from e

    if not isinstance(parsed, dict):
        raise BadResponseContentError("Generated content is not a JSON object", text)
    return parsed


def post_process(content: Any, purpose: LLMPurpose, want_json: bool) -> PostProcessResult:
    """
    Post-process generated content.

    Args:
        content: Generated content (text for completions, a vector for embeddings).
        purpose: What the model was asked to do.
        want_json: Whether a completion should be parsed as JSON.

    Returns:
        COMPLETED with the content, or OVERLOADED with the failure text when
        a completion cannot be used.
    """
    if purpose is not LLMPurpose.COMPLETIONS:
        return PostProcessResult(status=ResponseStatus.COMPLETED, generated=content)

    try:
        if not isinstance(content, str):
            raise BadResponseContentError("Generated content is not a string", content)
        generated = convert_text_to_json(content) if want_json else content
    except BadResponseContentError as e:
        logger.debug(
            "LLM response cannot be parsed to JSON, marking as overloaded so it can be retried"
        )
        return PostProcessResult(status=ResponseStatus.OVERLOADED, error=get_error_text(e))

    return PostProcessResult(status=ResponseStatus.COMPLETED, generated=generated)


def validate_structured_response(
    resource_name: str,
    generated: Any,
    schema: type[BaseModel] | None = None,
) -> Any:
    """
    Validate a parsed completion against a pydantic model.

    Args:
        resource_name: Name of the thing the completion describes, for logs.
        generated: Parsed completion content.
        schema: Model to validate against; content passes through when omitted.

    Returns:
        The validated model instance, the content itself without a schema,
        or None when validation fails.
    """
    if schema is None:
        return generated

    try:
        return schema.model_validate(generated)
    except ValidationError as e:
        logger.warning(
            f"LLM response for '{resource_name}' does not match {schema.__name__}: "
            f"{e.error_count()} validation error(s)"
        )
        logger.debug(f"Validation detail for '{resource_name}': {e}")
        return None
