"""Shared shapes for provider wire translation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from cellar.models import LLMToolCall


@dataclass(slots=True)
class WireRequest:
    """A fully built provider HTTP request, ready to be sent."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    params: dict[str, str] = field(default_factory=dict)


class MalformedResponse(ValueError):
    """A 2xx provider body did not have the documented shape."""


INVALID_ARGUMENTS = "Invalid tool arguments"


def decode_arguments(raw: Any) -> tuple[dict[str, Any], str | None]:
    """Decode tool-call arguments sent as an object or a JSON string.

    Returns the arguments and, when they cannot be decoded into an object,
    an error message for that call's result slot.
    """
    if raw is None or raw == "":
        return {}, None
    if isinstance(raw, dict):
        return raw, None
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}, INVALID_ARGUMENTS
    if not isinstance(parsed, dict):
        return {}, INVALID_ARGUMENTS
    return parsed, None


def tool_call(name: str, raw_arguments: Any, call_id: str | None = None) -> LLMToolCall:
    arguments, error = decode_arguments(raw_arguments)
    return LLMToolCall(name=name, arguments=arguments, call_id=call_id, argument_error=error)
