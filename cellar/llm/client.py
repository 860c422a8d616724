"""Single-shot HTTP client for every supported AI provider."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from cellar.config import Settings
from cellar.errors import ProviderNotConfigured, UnsupportedProvider, UpstreamError
from cellar.llm import anthropic_messages, chat_completions, gemini
from cellar.llm.wire import MalformedResponse, WireRequest
from cellar.models import AIConnection, ChatMessage, LLMResponse, Provider
from cellar.tools.manifest import ToolSpec

_LOGGER = logging.getLogger(__name__)

_PARSERS = {
    Provider.OPENAI: chat_completions.parse_response,
    Provider.LOVABLE: chat_completions.parse_response,
    Provider.ANTHROPIC: anthropic_messages.parse_response,
    Provider.GOOGLE: gemini.parse_response,
}


def parse_provider(value: str) -> Provider:
    try:
        return Provider(value)
    except ValueError:
        raise UnsupportedProvider(value) from None


def build_request(
    settings: Settings,
    connection: AIConnection,
    messages: list[ChatMessage],
    tools: list[ToolSpec],
) -> WireRequest:
    """Translate a conversation into the wire request for the connection's provider."""

    provider = parse_provider(connection.provider)
    api_key = connection.api_key or ""
    if provider is Provider.OPENAI:
        return chat_completions.build_request(
            settings.openai_base_url, api_key, connection.model_name, messages, tools
        )
    if provider is Provider.LOVABLE:
        if not settings.lovable_api_key:
            raise ProviderNotConfigured("Lovable AI not configured")
        return chat_completions.build_request(
            settings.lovable_base_url, settings.lovable_api_key, connection.model_name, messages, tools
        )
    if provider is Provider.ANTHROPIC:
        return anthropic_messages.build_request(
            settings.anthropic_base_url,
            api_key,
            settings.anthropic_version,
            settings.anthropic_max_tokens,
            connection.model_name,
            messages,
            tools,
        )
    return gemini.build_request(settings.google_base_url, api_key, connection.model_name, messages, tools)


def parse_response(provider: Provider, data: dict[str, Any]) -> LLMResponse:
    try:
        return _PARSERS[provider](data)
    except (MalformedResponse, KeyError, IndexError, TypeError, AttributeError) as exc:
        raise UpstreamError(502, json.dumps(data)[:2000], message="Malformed provider response") from exc


class ProviderClient:
    """Sends one request per call; no retries and no state between calls."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    async def generate(
        self,
        connection: AIConnection,
        messages: list[ChatMessage],
        tools: list[ToolSpec],
    ) -> LLMResponse:
        request = build_request(self._settings, connection, messages, tools)
        provider = Provider(connection.provider)

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    request.url,
                    headers=request.headers,
                    params=request.params or None,
                    json=request.body,
                )
            except httpx.TimeoutException as exc:
                _LOGGER.warning("%s request timed out after %ss", provider.value, self._settings.request_timeout_seconds)
                raise UpstreamError(504, f"Request timed out: {exc}") from exc
            except httpx.HTTPError as exc:
                _LOGGER.warning("%s request failed: %s", provider.value, exc)
                raise UpstreamError(502, str(exc)) from exc

        if not response.is_success:
            _LOGGER.error("AI API error (%s %d): %s", provider.value, response.status_code, response.text[:500])
            status = response.status_code if response.status_code >= 400 else 502
            raise UpstreamError(status, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(502, response.text[:2000], message="Malformed provider response") from exc

        result = parse_response(provider, data)
        _LOGGER.info(
            "LLM response: provider=%s content=%r tool_calls=%r",
            provider.value,
            result.content[:200],
            [call.name for call in result.tool_calls],
        )
        return result
