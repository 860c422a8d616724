"""Static capability manifest offered to every provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Provider-independent description of one callable tool."""

    name: str
    description: str
    parameters: dict[str, Any]


def _object(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


WINE_TYPES = ["rouge", "blanc", "rosé", "champagne"]

TOOL_MANIFEST: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="search_wines",
        description="Search the wine catalog by name, type, region or category.",
        parameters=_object(
            {
                "query": {"type": "string", "description": "Free-text search term."},
                "type": {
                    "type": "string",
                    "description": f"Wine type ({', '.join(WINE_TYPES)}).",
                },
                "region": {"type": "string", "description": "Wine region."},
            }
        ),
    ),
    ToolSpec(
        name="get_wine_details",
        description="Get the full details of one wine.",
        parameters=_object({"wine_id": {"type": "string", "description": "Wine ID."}}, ["wine_id"]),
    ),
    ToolSpec(
        name="add_to_cart",
        description="Add a wine to the shopping cart.",
        parameters=_object(
            {
                "wine_id": {"type": "string", "description": "Wine ID."},
                "quantity": {"type": "integer", "description": "Number of bottles to add."},
            },
            ["wine_id", "quantity"],
        ),
    ),
    ToolSpec(
        name="get_cart",
        description="Show the current content of the shopping cart.",
        parameters=_object(),
    ),
    ToolSpec(
        name="remove_from_cart",
        description="Remove a wine from the shopping cart.",
        parameters=_object({"wine_id": {"type": "string", "description": "ID of the wine to remove."}}, ["wine_id"]),
    ),
    ToolSpec(
        name="get_orders",
        description="List the user's order history.",
        parameters=_object(),
    ),
    ToolSpec(
        name="get_order_details",
        description="Get the details of one of the user's orders.",
        parameters=_object({"order_id": {"type": "string", "description": "Order ID."}}, ["order_id"]),
    ),
    ToolSpec(
        name="get_profile",
        description="Show the user's profile information.",
        parameters=_object(),
    ),
    ToolSpec(
        name="update_profile",
        description="Update the user's profile information.",
        parameters=_object(
            {
                "name": {"type": "string", "description": "Full name."},
                "phone": {"type": "string", "description": "Phone number."},
                "address": {"type": "string", "description": "Postal address."},
            }
        ),
    ),
    ToolSpec(
        name="get_payment_methods",
        description="List the user's saved payment methods.",
        parameters=_object(),
    ),
)
