"""Google Gemini generateContent format."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from cellar.llm.wire import MalformedResponse, WireRequest, tool_call
from cellar.models import ChatMessage, LLMResponse
from cellar.tools.manifest import ToolSpec


def function_declarations(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    declarations = []
    for tool in tools:
        declaration: dict[str, Any] = {"name": tool.name, "description": tool.description}
        # Gemini rejects OBJECT schemas with empty properties.
        if tool.parameters.get("properties"):
            declaration["parameters"] = tool.parameters
        declarations.append(declaration)
    return declarations


def build_request(
    base_url: str,
    api_key: str,
    model: str,
    messages: list[ChatMessage],
    tools: list[ToolSpec],
) -> WireRequest:
    return WireRequest(
        url=f"{base_url.rstrip('/')}/v1beta/models/{quote(model, safe='')}:generateContent",
        headers={"Content-Type": "application/json"},
        params={"key": api_key},
        body={
            "contents": [
                {
                    "role": "model" if message.role == "assistant" else "user",
                    "parts": [{"text": message.content}],
                }
                for message in messages
            ],
            "tools": [{"functionDeclarations": function_declarations(tools)}],
        },
    )


def parse_response(data: dict[str, Any]) -> LLMResponse:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponse("missing candidates[0].content.parts") from exc

    tool_calls = [
        tool_call(part["functionCall"].get("name", ""), part["functionCall"].get("args"))
        for part in parts
        if part.get("functionCall")
    ]
    text = "".join(part.get("text", "") for part in parts if "text" in part)
    return LLMResponse(content=text, tool_calls=tool_calls)
