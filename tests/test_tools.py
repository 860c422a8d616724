from unittest.mock import AsyncMock, MagicMock

import pytest

from cellar.db import Database
from cellar.models import LLMToolCall
from cellar.tools.base import Tool
from cellar.tools.cart_tool import AddToCartTool
from cellar.tools.manifest import TOOL_MANIFEST, ToolSpec
from cellar.tools.registry import ToolRegistry, build_registry


def _db(tmp_path) -> Database:
    db = Database(tmp_path / "cellar.db")
    db.initialize()
    return db


def _tool(name: str, **run_kwargs) -> MagicMock:
    tool = MagicMock(spec=Tool)
    tool.name = name
    tool.run = AsyncMock(**run_kwargs)
    return tool


def test_every_manifest_entry_has_a_handler(tmp_path):
    registry = build_registry(_db(tmp_path))
    assert [spec.name for spec in registry.specs] == [spec.name for spec in TOOL_MANIFEST]


def test_registry_rejects_manifest_entry_without_handler():
    manifest = [ToolSpec("a", "A", {"type": "object", "properties": {}}), ToolSpec("b", "B", {"type": "object"})]
    with pytest.raises(RuntimeError, match="without a handler: b"):
        ToolRegistry(manifest, [_tool("a")])


def test_registry_rejects_handler_without_manifest_entry():
    manifest = [ToolSpec("a", "A", {"type": "object", "properties": {}})]
    with pytest.raises(RuntimeError, match="without a manifest entry: z"):
        ToolRegistry(manifest, [_tool("a"), _tool("z")])


@pytest.mark.asyncio
async def test_unknown_tool_returns_error_slot(tmp_path):
    registry = build_registry(_db(tmp_path))
    assert await registry.execute("user-1", "drop_tables", {}) == {"error": "Unknown tool"}


@pytest.mark.asyncio
async def test_invalid_input_is_reported_not_raised(tmp_path):
    registry = build_registry(_db(tmp_path))
    result = await registry.execute("user-1", "get_wine_details", {})
    assert result["error"].startswith("Invalid input for tool")


@pytest.mark.asyncio
async def test_numeric_ids_are_coerced_to_strings(tmp_path):
    db = _db(tmp_path)
    db.add_wine("Pommard", 39.0, wine_type="rouge", wine_id="7")
    registry = build_registry(db)

    result = await registry.execute("user-1", "get_wine_details", {"wine_id": 7})

    assert result["wine"]["name"] == "Pommard"


@pytest.mark.asyncio
async def test_search_wines_returns_catalog_rows(tmp_path):
    db = _db(tmp_path)
    db.add_wine("Saint-Émilion", 32.0, wine_type="rouge", region="Bordeaux")
    db.add_wine("Muscadet", 12.0, wine_type="blanc", region="Loire")
    registry = build_registry(db)

    result = await registry.execute("user-1", "search_wines", {"type": "rouge"})

    assert [w["name"] for w in result["wines"]] == ["Saint-Émilion"]


@pytest.mark.asyncio
async def test_cart_tools_never_touch_storage():
    db = MagicMock(spec=Database)
    registry = build_registry(db)

    added = await registry.execute("user-1", "add_to_cart", {"wine_id": "7", "quantity": 2})
    removed = await registry.execute("user-1", "remove_from_cart", {"wine_id": "7"})
    cart = await registry.execute("user-1", "get_cart", {})

    assert added == {"action": "add_to_cart", "wine_id": "7", "quantity": 2, "message": "Vin ajouté au panier avec succès"}
    assert removed["action"] == "remove_from_cart"
    assert cart["action"] == "get_cart"
    assert db.method_calls == []


@pytest.mark.asyncio
async def test_add_to_cart_rejects_non_positive_quantity():
    result = await build_registry(MagicMock(spec=Database)).execute(
        "user-1", "add_to_cart", {"wine_id": "7", "quantity": 0}
    )
    assert result == {"error": "Quantity must be at least 1"}


@pytest.mark.asyncio
async def test_add_to_cart_tool_runs_standalone():
    result = await AddToCartTool().run("user-1", wine_id="3", quantity=1)
    assert result["quantity"] == 1


@pytest.mark.asyncio
async def test_account_tools_are_scoped_to_caller(tmp_path):
    db = _db(tmp_path)
    wine_id = db.add_wine("Meursault", 55.0, wine_type="blanc")
    foreign_order = db.create_order("user-2", [(wine_id, 1)])
    db.create_order("user-1", [(wine_id, 3)])
    db.upsert_profile("user-2", name="Bob")
    db.add_payment_method("user-2", "visa", "4242")
    registry = build_registry(db)

    orders = await registry.execute("user-1", "get_orders", {})
    foreign = await registry.execute("user-1", "get_order_details", {"order_id": foreign_order})
    profile = await registry.execute("user-1", "get_profile", {})
    methods = await registry.execute("user-1", "get_payment_methods", {})

    assert len(orders["orders"]) == 1
    assert orders["orders"][0]["order_items"][0]["quantity"] == 3
    assert foreign == {"error": "Order not found"}
    assert profile == {"error": "Profile not found"}
    assert methods == {"payment_methods": []}


@pytest.mark.asyncio
async def test_update_profile_writes_caller_profile(tmp_path):
    db = _db(tmp_path)
    db.upsert_profile("user-1", name="Alice")
    db.upsert_profile("user-2", name="Bob")
    registry = build_registry(db)

    result = await registry.execute("user-1", "update_profile", {"address": "1 rue du Vin", "phone": ""})

    assert result["profile"]["address"] == "1 rue du Vin"
    assert result["message"] == "Profil mis à jour avec succès"
    assert db.get_profile("user-2")["address"] is None
    assert await registry.execute("user-1", "update_profile", {}) == {"error": "No profile fields to update"}


@pytest.mark.asyncio
async def test_execute_all_isolates_failures_and_keeps_order():
    manifest = [
        ToolSpec("ok", "ok", {"type": "object", "properties": {}}),
        ToolSpec("boom", "boom", {"type": "object", "properties": {}}),
    ]
    registry = ToolRegistry(
        manifest,
        [_tool("ok", return_value={"fine": True}), _tool("boom", side_effect=RuntimeError("db down"))],
    )

    outcomes = await registry.execute_all(
        "user-1",
        [
            LLMToolCall(name="boom", arguments={}),
            LLMToolCall(name="ok", arguments={}),
            LLMToolCall(name="nope", arguments={}),
        ],
    )

    assert [(o.tool, o.result) for o in outcomes] == [
        ("boom", {"error": "db down"}),
        ("ok", {"fine": True}),
        ("nope", {"error": "Unknown tool"}),
    ]


@pytest.mark.asyncio
async def test_execute_all_refuses_undecodable_arguments_without_running_tool():
    manifest = [ToolSpec("search", "search", {"type": "object", "properties": {"type": {"type": "string"}}})]
    search = _tool("search", return_value={"wines": []})
    registry = ToolRegistry(manifest, [search])

    outcomes = await registry.execute_all(
        "user-1",
        [
            LLMToolCall(name="search", arguments={}, call_id="c1", argument_error="Invalid tool arguments"),
            LLMToolCall(name="search", arguments={"type": "rouge"}, call_id="c2"),
        ],
    )

    assert [(o.tool, o.result) for o in outcomes] == [
        ("search", {"error": "Invalid tool arguments"}),
        ("search", {"wines": []}),
    ]
    search.run.assert_awaited_once_with("user-1", type="rouge")
