"""OpenAI-compatible chat completions format (openai and the lovable gateway)."""

from __future__ import annotations

from typing import Any

from cellar.llm.wire import MalformedResponse, WireRequest, tool_call
from cellar.models import ChatMessage, LLMResponse, LLMToolCall
from cellar.tools.manifest import ToolSpec


def tool_specs(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def build_request(
    base_url: str,
    api_key: str,
    model: str,
    messages: list[ChatMessage],
    tools: list[ToolSpec],
) -> WireRequest:
    return WireRequest(
        url=f"{base_url.rstrip('/')}/chat/completions",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        body={
            "model": model,
            "messages": [message.as_dict() for message in messages],
            "tools": tool_specs(tools),
        },
    )


def parse_response(data: dict[str, Any]) -> LLMResponse:
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponse("missing choices[0].message") from exc

    parsed_tool_calls: list[LLMToolCall] = []
    for call in message.get("tool_calls") or []:
        function_data = call.get("function", {})
        parsed_tool_calls.append(
            tool_call(function_data.get("name", ""), function_data.get("arguments"), call_id=call.get("id"))
        )

    return LLMResponse(content=message.get("content") or "", tool_calls=parsed_tool_calls)
