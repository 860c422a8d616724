"""Registry binding the static manifest to tool handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from pydantic import ConfigDict, ValidationError, create_model

from cellar.db import Database
from cellar.errors import ToolExecutionError
from cellar.models import LLMToolCall, ToolOutcome
from cellar.tools.account_tool import (
    GetOrderDetailsTool,
    GetOrdersTool,
    GetPaymentMethodsTool,
    GetProfileTool,
    UpdateProfileTool,
)
from cellar.tools.base import Tool
from cellar.tools.cart_tool import AddToCartTool, GetCartTool, RemoveFromCartTool
from cellar.tools.catalog_tool import GetWineDetailsTool, SearchWinesTool
from cellar.tools.manifest import TOOL_MANIFEST, ToolSpec

LOGGER = logging.getLogger(__name__)

UNKNOWN_TOOL = "Unknown tool"


class ToolRegistry:
    """Explicit name -> handler table checked against the manifest."""

    def __init__(self, manifest: Iterable[ToolSpec], tools: Iterable[Tool]) -> None:
        self._specs = {spec.name: spec for spec in manifest}
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise RuntimeError(f"Duplicate handler for tool: {tool.name}")
            self._tools[tool.name] = tool

        missing = sorted(set(self._specs) - set(self._tools))
        extra = sorted(set(self._tools) - set(self._specs))
        if missing:
            raise RuntimeError(f"Manifest tools without a handler: {', '.join(missing)}")
        if extra:
            raise RuntimeError(f"Handlers without a manifest entry: {', '.join(extra)}")

    @property
    def specs(self) -> list[ToolSpec]:
        return list(self._specs.values())

    async def execute(self, user_id: str, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Run one tool call; failures are returned as ``{"error": ...}``."""

        tool = self._tools.get(tool_name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %r", tool_name)
            return {"error": UNKNOWN_TOOL}

        LOGGER.info("Executing tool %s with %s", tool_name, sorted(arguments))
        try:
            validated = _validate_json_schema(self._specs[tool_name].parameters, arguments)
            return await tool.run(user_id, **validated)
        except ToolExecutionError as exc:
            LOGGER.info("Tool %s failed: %s", tool_name, exc)
            return {"error": str(exc)}
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error executing %s", tool_name)
            return {"error": str(exc)}

    async def execute_all(self, user_id: str, tool_calls: list[LLMToolCall]) -> list[ToolOutcome]:
        """Run every call concurrently; results keep the invocation order."""

        results = await asyncio.gather(*(self.execute_call(user_id, call) for call in tool_calls))
        return [ToolOutcome(tool=call.name, result=result) for call, result in zip(tool_calls, results)]

    async def execute_call(self, user_id: str, call: LLMToolCall) -> dict[str, Any]:
        """Run one provider tool call, refusing arguments that failed to decode."""

        if call.argument_error:
            LOGGER.warning("Tool call %s (%s) has undecodable arguments", call.name, call.call_id)
            return {"error": call.argument_error}
        LOGGER.info("Tool call %s requested as %s", call.call_id, call.name)
        return await self.execute(user_id, call.name, call.arguments)


def _validate_json_schema(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, tuple[type[Any], Any]] = {}
    for name, config in props.items():
        typ = _python_type(config.get("type", "string"))
        if name in required:
            fields[name] = (typ, ...)
        else:
            fields[name] = (typ | None, None)

    model = create_model(
        "ToolInputModel",
        __config__=ConfigDict(coerce_numbers_to_str=True),
        **fields,
    )
    try:
        value = model(**payload)
    except ValidationError as exc:
        raise ToolExecutionError(f"Invalid input for tool: {exc}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(schema_type: str) -> type[Any]:
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(schema_type, str)


def build_registry(db: Database) -> ToolRegistry:
    """Registry for the storefront manifest with its database-backed handlers."""

    return ToolRegistry(
        TOOL_MANIFEST,
        [
            SearchWinesTool(db),
            GetWineDetailsTool(db),
            AddToCartTool(),
            RemoveFromCartTool(),
            GetCartTool(),
            GetOrdersTool(db),
            GetOrderDetailsTool(db),
            GetProfileTool(db),
            UpdateProfileTool(db),
            GetPaymentMethodsTool(db),
        ],
    )
