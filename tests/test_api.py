from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from cellar.api import CORS_HEADERS, create_app
from cellar.auth import SessionTokenAuthenticator
from cellar.config import Settings
from cellar.db import Database
from cellar.errors import UnsupportedProvider, UpstreamError
from cellar.gateway import ChatGateway
from cellar.llm.client import ProviderClient
from cellar.models import LLMResponse, LLMToolCall
from cellar.tools.registry import build_registry


def _setup(tmp_path, response=None, side_effect=None):
    db = Database(tmp_path / "cellar.db")
    db.initialize()
    provider = MagicMock(spec=ProviderClient)
    provider.generate = AsyncMock(return_value=response, side_effect=side_effect)
    gateway = ChatGateway(
        db=db,
        authenticator=SessionTokenAuthenticator(db),
        provider_client=provider,
        tool_registry=build_registry(db),
    )
    client = TestClient(create_app(Settings(_env_file=None), db=db, gateway=gateway))
    return db, provider, client


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _chat(connection_id: str, text: str = "Bonjour") -> dict:
    return {"connectionId": connection_id, "messages": [{"role": "user", "content": text}]}


def _assert_cors(response) -> None:
    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


def test_preflight_is_answered_without_auth(tmp_path):
    _, _, client = _setup(tmp_path)

    response = client.options("/ai-chat")

    assert response.status_code == 200
    assert response.content == b""
    _assert_cors(response)


def test_missing_authorization_is_401_without_side_effects(tmp_path):
    db = MagicMock(spec=Database)
    provider = MagicMock(spec=ProviderClient)
    provider.generate = AsyncMock()
    gateway = ChatGateway(
        db=db,
        authenticator=SessionTokenAuthenticator(db),
        provider_client=provider,
        tool_registry=build_registry(db),
    )
    client = TestClient(create_app(Settings(_env_file=None), db=db, gateway=gateway))

    response = client.post("/ai-chat", json=_chat("conn-1"))

    assert response.status_code == 401
    assert response.json() == {"error": "No authorization header"}
    _assert_cors(response)
    assert db.method_calls == []
    provider.generate.assert_not_called()


def test_invalid_token_is_401(tmp_path):
    _, provider, client = _setup(tmp_path)

    response = client.post("/ai-chat", json=_chat("conn-1"), headers=_auth("forged"))

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    provider.generate.assert_not_called()


def test_foreign_and_missing_connections_look_the_same(tmp_path):
    db, provider, client = _setup(tmp_path)
    token = db.create_session("user-1")
    foreign = db.create_connection("user-2", "openai", "gpt-4o", api_key="sk-other")

    foreign_response = client.post("/ai-chat", json=_chat(foreign.id), headers=_auth(token))
    missing_response = client.post("/ai-chat", json=_chat("nope"), headers=_auth(token))

    assert foreign_response.status_code == missing_response.status_code == 404
    assert foreign_response.json() == missing_response.json() == {"error": "Connection not found"}
    provider.generate.assert_not_called()


def test_chat_returns_content(tmp_path):
    db, _, client = _setup(tmp_path, response=LLMResponse(content="Bonjour !"))
    token = db.create_session("user-1")
    connection = db.create_connection("user-1", "openai", "gpt-4o", api_key="sk")

    response = client.post("/ai-chat", json=_chat(connection.id), headers=_auth(token))

    assert response.status_code == 200
    assert response.json() == {"content": "Bonjour !"}
    _assert_cors(response)


def test_chat_returns_client_actions(tmp_path):
    db, _, client = _setup(
        tmp_path,
        response=LLMResponse(
            content="",
            tool_calls=[
                LLMToolCall(name="remove_from_cart", arguments={"wine_id": "9"}),
                LLMToolCall(name="get_orders", arguments={}),
            ],
        ),
    )
    token = db.create_session("user-1")
    connection = db.create_connection("user-1", "openai", "gpt-4o", api_key="sk")

    body = client.post("/ai-chat", json=_chat(connection.id), headers=_auth(token)).json()

    assert body["actions"] == [{"action": "remove_from_cart", "wine_id": "9", "message": "Vin retiré du panier"}]
    assert "✓ get_orders" in body["content"]


def test_unsupported_provider_is_400(tmp_path):
    db, _, client = _setup(tmp_path, side_effect=UnsupportedProvider("mistral"))
    token = db.create_session("user-1")
    connection = db.create_connection("user-1", "mistral", "large", api_key="k")

    response = client.post("/ai-chat", json=_chat(connection.id), headers=_auth(token))

    assert response.status_code == 400
    assert response.json() == {"error": "Unsupported provider"}


def test_upstream_error_passes_status_and_details(tmp_path):
    db, _, client = _setup(tmp_path, side_effect=UpstreamError(429, "slow down"))
    token = db.create_session("user-1")
    connection = db.create_connection("user-1", "anthropic", "claude", api_key="k")

    response = client.post("/ai-chat", json=_chat(connection.id), headers=_auth(token))

    assert response.status_code == 429
    assert response.json() == {"error": "AI API error", "details": "slow down"}
    _assert_cors(response)


def test_unexpected_exception_is_500_with_message(tmp_path):
    db, _, client = _setup(tmp_path, side_effect=RuntimeError("kaboom"))
    token = db.create_session("user-1")
    connection = db.create_connection("user-1", "openai", "gpt-4o", api_key="k")

    response = client.post("/ai-chat", json=_chat(connection.id), headers=_auth(token))

    assert response.status_code == 500
    assert response.json() == {"error": "kaboom"}
    _assert_cors(response)


def test_malformed_body_is_400(tmp_path):
    db, _, client = _setup(tmp_path)
    token = db.create_session("user-1")

    response = client.post("/ai-chat", content=b"{not json", headers=_auth(token))

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request body")


def test_connection_management_hides_credentials(tmp_path):
    db, _, client = _setup(tmp_path)
    token = db.create_session("user-1")
    other = db.create_session("user-2")

    created = client.post(
        "/ai-connections",
        json={"provider": "anthropic", "model_name": "claude-sonnet-4-5", "api_key": "secret", "display_name": "Claude"},
        headers=_auth(token),
    )
    assert created.status_code == 201
    assert "api_key" not in created.json()

    listed = client.get("/ai-connections", headers=_auth(token)).json()["connections"]
    assert [c["display_name"] for c in listed] == ["Claude"]
    assert client.get("/ai-connections", headers=_auth(other)).json() == {"connections": []}

    connection_id = created.json()["id"]
    assert client.delete(f"/ai-connections/{connection_id}", headers=_auth(other)).status_code == 404
    assert client.delete(f"/ai-connections/{connection_id}", headers=_auth(token)).json() == {
        "id": connection_id,
        "deleted": True,
    }


def test_connection_creation_validates_provider_and_key(tmp_path):
    db, _, client = _setup(tmp_path)
    token = db.create_session("user-1")

    bad_provider = client.post("/ai-connections", json={"provider": "mistral", "model_name": "m"}, headers=_auth(token))
    missing_key = client.post("/ai-connections", json={"provider": "openai", "model_name": "m"}, headers=_auth(token))
    lovable = client.post(
        "/ai-connections", json={"provider": "lovable", "model_name": "google/gemini-2.5-flash"}, headers=_auth(token)
    )

    assert bad_provider.status_code == 400
    assert missing_key.status_code == 400
    assert lovable.status_code == 201
    assert db.get_connection(lovable.json()["id"], "user-1").api_key is None


def test_history_is_owner_scoped(tmp_path):
    db, _, client = _setup(tmp_path)
    token = db.create_session("user-1")
    other = db.create_session("user-2")
    connection = db.create_connection("user-1", "openai", "gpt-4o", api_key="sk")
    db.add_chat_exchange("user-1", connection.id, "hi", "hello")

    mine = client.get("/ai-chat/history", params={"connectionId": connection.id}, headers=_auth(token))
    theirs = client.get("/ai-chat/history", params={"connectionId": connection.id}, headers=_auth(other))
    unauthenticated = client.get("/ai-chat/history", params={"connectionId": connection.id})

    assert [m["role"] for m in mine.json()["messages"]] == ["user", "assistant"]
    assert theirs.status_code == 404
    assert unauthenticated.status_code == 401


def test_admin_listing_requires_admin_role(tmp_path):
    db, _, client = _setup(tmp_path)
    admin = db.create_session("admin-1")
    user = db.create_session("user-1")
    db.add_role("admin-1", "admin")
    db.add_chat_exchange("user-1", "conn-1", "hi", "hello")

    forbidden = client.get("/admin/chat-messages", params={"userId": "user-1"}, headers=_auth(user))
    allowed = client.get("/admin/chat-messages", params={"userId": "user-1"}, headers=_auth(admin))

    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Forbidden"}
    assert len(allowed.json()["messages"]) == 2


def test_health(tmp_path):
    _, _, client = _setup(tmp_path)
    assert client.get("/health").json() == {"status": "ok"}


def test_wrong_method_uses_error_envelope(tmp_path):
    _, provider, client = _setup(tmp_path)

    response = client.get("/ai-chat")

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}
    _assert_cors(response)
    provider.generate.assert_not_called()
