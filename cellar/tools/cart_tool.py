"""Cart tools.

The cart lives in the shopper's browser. These handlers never touch storage:
they validate the request and hand back an action for the client to apply.
"""

from __future__ import annotations

from typing import Any

from cellar.errors import ToolExecutionError
from cellar.tools.base import Tool


class AddToCartTool(Tool):
    name = "add_to_cart"

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        quantity = kwargs["quantity"]
        if quantity < 1:
            raise ToolExecutionError("Quantity must be at least 1")
        return {
            "action": "add_to_cart",
            "wine_id": kwargs["wine_id"],
            "quantity": quantity,
            "message": "Vin ajouté au panier avec succès",
        }


class RemoveFromCartTool(Tool):
    name = "remove_from_cart"

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        return {
            "action": "remove_from_cart",
            "wine_id": kwargs["wine_id"],
            "message": "Vin retiré du panier",
        }


class GetCartTool(Tool):
    name = "get_cart"

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        return {"action": "get_cart", "message": "Veuillez consulter votre panier"}
