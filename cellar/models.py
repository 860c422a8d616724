"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Provider(str, Enum):
    """Upstream AI backends a connection can point at."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    LOVABLE = "lovable"


CLIENT_ACTIONS = frozenset({"add_to_cart", "remove_from_cart", "get_cart"})


@dataclass(slots=True)
class ChatMessage:
    """One role-tagged turn of a conversation."""

    role: str
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class AIConnection:
    """A user's saved configuration for one AI provider."""

    id: str
    user_id: str
    provider: str
    model_name: str
    api_key: str | None = None
    display_name: str | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None
    # Set when the provider sent arguments that do not decode to an object.
    argument_error: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Provider-agnostic result: plain text or one or more tool calls."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)


@dataclass(slots=True)
class ToolOutcome:
    """Result of one executed tool call."""

    tool: str
    result: dict[str, Any]

    @property
    def is_client_action(self) -> bool:
        return self.result.get("action") in CLIENT_ACTIONS


@dataclass(slots=True)
class GatewayReply:
    """Final payload returned to the storefront."""

    content: str
    actions: list[dict[str, Any]] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"content": self.content}
        if self.actions:
            payload["actions"] = self.actions
        return payload
