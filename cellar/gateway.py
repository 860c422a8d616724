"""Assistant gateway: authenticate, resolve connection, call provider, run tools."""

from __future__ import annotations

import json
import logging

from cellar.auth import Authenticator
from cellar.db import Database
from cellar.errors import InvalidRequest, NotFound
from cellar.llm.client import ProviderClient
from cellar.models import AIConnection, ChatMessage, GatewayReply, ToolOutcome
from cellar.schemas import ChatRequest, parse_body
from cellar.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

SUMMARY_HEADER = "J'ai exécuté les actions suivantes:"


class ChatGateway:
    """Per-request pipeline. Holds collaborators only, never request state."""

    def __init__(
        self,
        db: Database,
        authenticator: Authenticator,
        provider_client: ProviderClient,
        tool_registry: ToolRegistry,
    ) -> None:
        self._db = db
        self._authenticator = authenticator
        self._provider_client = provider_client
        self._tool_registry = tool_registry

    async def authenticate(self, authorization: str | None) -> str:
        return await self._authenticator.authenticate(authorization)

    def resolve_connection(self, connection_id: str, user_id: str) -> AIConnection:
        """Load a connection owned by ``user_id``.

        A foreign connection id is reported exactly like a missing one.
        """
        connection = self._db.get_connection(connection_id, user_id)
        if connection is None:
            raise NotFound("Connection not found")
        return connection

    async def handle(self, authorization: str | None, body: bytes) -> GatewayReply:
        """Handle one chat request and return the reply payload."""

        user_id = await self.authenticate(authorization)
        request = parse_body(ChatRequest, body)
        user_message = _latest_user_message(request)
        connection = self.resolve_connection(request.connection_id, user_id)

        messages = [ChatMessage(role=m.role, content=m.content) for m in request.messages]
        response = await self._provider_client.generate(connection, messages, self._tool_registry.specs)

        if response.tool_calls:
            outcomes = await self._tool_registry.execute_all(user_id, response.tool_calls)
            actions = [outcome.result for outcome in outcomes if outcome.is_client_action]
            reply = GatewayReply(content=summarize(outcomes), actions=actions or None)
        else:
            reply = GatewayReply(content=response.content)

        self._db.add_chat_exchange(user_id, connection.id, user_message, reply.content)
        LOGGER.info(
            "Chat handled for connection %s (%s): tools=%d actions=%d",
            connection.id,
            connection.provider,
            len(response.tool_calls),
            len(reply.actions or []),
        )
        return reply


def summarize(outcomes: list[ToolOutcome]) -> str:
    """Human-readable digest of every tool outcome, in invocation order."""

    blocks = [
        f"✓ {outcome.tool}: {json.dumps(outcome.result, indent=2, ensure_ascii=False, default=str)}"
        for outcome in outcomes
    ]
    return f"{SUMMARY_HEADER}\n\n" + "\n\n".join(blocks)


def _latest_user_message(request: ChatRequest) -> str:
    for message in reversed(request.messages):
        if message.role == "user":
            return message.content
    raise InvalidRequest("Conversation has no user message")
