"""Anthropic Messages API format."""

from __future__ import annotations

from typing import Any

from cellar.llm.wire import MalformedResponse, WireRequest, tool_call
from cellar.models import ChatMessage, LLMResponse
from cellar.tools.manifest import ToolSpec


def tool_specs(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}
        for tool in tools
    ]


def build_request(
    base_url: str,
    api_key: str,
    api_version: str,
    max_tokens: int,
    model: str,
    messages: list[ChatMessage],
    tools: list[ToolSpec],
) -> WireRequest:
    return WireRequest(
        url=f"{base_url.rstrip('/')}/v1/messages",
        headers={
            "x-api-key": api_key,
            "anthropic-version": api_version,
            "Content-Type": "application/json",
        },
        body={
            "model": model,
            "messages": [
                {
                    "role": "assistant" if message.role == "assistant" else "user",
                    "content": message.content,
                }
                for message in messages
            ],
            "max_tokens": max_tokens,
            "tools": tool_specs(tools),
        },
    )


def parse_response(data: dict[str, Any]) -> LLMResponse:
    blocks = data.get("content") if isinstance(data, dict) else None
    if not isinstance(blocks, list):
        raise MalformedResponse("missing content blocks")

    # Text and tool_use blocks can be interleaved.
    tool_calls = [
        tool_call(block.get("name", ""), block.get("input"), call_id=block.get("id"))
        for block in blocks
        if block.get("type") == "tool_use"
    ]
    text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
    return LLMResponse(content=text, tool_calls=tool_calls)
