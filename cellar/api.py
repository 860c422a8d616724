"""FastAPI application exposing the assistant gateway."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cellar.auth import build_authenticator
from cellar.config import Settings
from cellar.db import Database
from cellar.errors import Forbidden, GatewayError, InvalidRequest, NotFound
from cellar.gateway import ChatGateway
from cellar.llm.client import ProviderClient, parse_provider
from cellar.models import AIConnection, Provider
from cellar.schemas import ConnectionCreate, parse_body
from cellar.tools.registry import build_registry

LOGGER = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
}


def build_gateway(settings: Settings, db: Database) -> ChatGateway:
    return ChatGateway(
        db=db,
        authenticator=build_authenticator(settings, db),
        provider_client=ProviderClient(settings),
        tool_registry=build_registry(db),
    )


def create_app(
    settings: Settings,
    db: Database | None = None,
    gateway: ChatGateway | None = None,
) -> FastAPI:
    """Wire the database, gateway and routes into an application."""

    if db is None:
        db = Database(settings.database_path)
        db.initialize()
    gateway = gateway or build_gateway(settings, db)

    app = FastAPI(title="Cellar assistant gateway", version="1.0.0")

    @app.middleware("http")
    async def cors_and_internal_errors(request: Request, call_next: Any) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = JSONResponse({"error": str(exc)}, status_code=500)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        else:
            LOGGER.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def routing_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    async def current_user(request: Request) -> str:
        return await gateway.authenticate(request.headers.get("authorization"))

    @app.options("/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=200)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/ai-chat")
    async def ai_chat(request: Request) -> JSONResponse:
        reply = await gateway.handle(request.headers.get("authorization"), await request.body())
        return JSONResponse(reply.as_dict())

    @app.get("/ai-chat/history")
    async def chat_history(request: Request, user_id: str = Depends(current_user)) -> dict[str, Any]:
        connection_id = request.query_params.get("connectionId")
        if not connection_id:
            raise InvalidRequest("connectionId is required")
        connection = gateway.resolve_connection(connection_id, user_id)
        return {"messages": db.list_chat_messages(user_id, connection.id)}

    @app.get("/ai-connections")
    async def list_connections(user_id: str = Depends(current_user)) -> dict[str, Any]:
        return {"connections": [_public_connection(c) for c in db.list_connections(user_id)]}

    @app.post("/ai-connections", status_code=201)
    async def create_connection(request: Request, user_id: str = Depends(current_user)) -> dict[str, Any]:
        payload = parse_body(ConnectionCreate, await request.body())
        provider = parse_provider(payload.provider)
        if provider is not Provider.LOVABLE and not payload.api_key:
            raise InvalidRequest("api_key is required for this provider")
        connection = db.create_connection(
            user_id=user_id,
            provider=provider.value,
            model_name=payload.model_name,
            api_key=None if provider is Provider.LOVABLE else payload.api_key,
            display_name=payload.display_name,
            is_active=payload.is_active,
        )
        return _public_connection(connection)

    @app.delete("/ai-connections/{connection_id}")
    async def delete_connection(connection_id: str, user_id: str = Depends(current_user)) -> dict[str, Any]:
        if not db.delete_connection(connection_id, user_id):
            raise NotFound("Connection not found")
        return {"id": connection_id, "deleted": True}

    @app.get("/admin/chat-messages")
    async def admin_chat_messages(request: Request, user_id: str = Depends(current_user)) -> dict[str, Any]:
        if not db.has_role(user_id, "admin"):
            raise Forbidden()
        target = request.query_params.get("userId")
        if not target:
            raise InvalidRequest("userId is required")
        return {"messages": db.list_chat_messages(target)}

    return app


def _public_connection(connection: AIConnection) -> dict[str, Any]:
    """Connection fields safe to send back to the browser (never the credential)."""

    return {
        "id": connection.id,
        "provider": connection.provider,
        "model_name": connection.model_name,
        "display_name": connection.display_name,
        "is_active": connection.is_active,
        "created_at": connection.created_at,
    }
