"""Tools reading and updating the caller's own account data."""

from __future__ import annotations

from typing import Any

from cellar.db import Database
from cellar.errors import ToolExecutionError
from cellar.tools.base import Tool

_ORDER_HISTORY_LIMIT = 10


class GetOrdersTool(Tool):
    """Most recent orders of the caller, newest first."""

    name = "get_orders"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        return {"orders": self._db.list_orders(user_id, limit=_ORDER_HISTORY_LIMIT)}


class GetOrderDetailsTool(Tool):
    name = "get_order_details"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        order = self._db.get_order(user_id, kwargs["order_id"])
        if order is None:
            raise ToolExecutionError("Order not found")
        return {"order": order}


class GetProfileTool(Tool):
    name = "get_profile"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        profile = self._db.get_profile(user_id)
        if profile is None:
            raise ToolExecutionError("Profile not found")
        return {"profile": profile}


class UpdateProfileTool(Tool):
    """Update name, phone and address; empty values are ignored."""

    name = "update_profile"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        updates = {key: kwargs[key] for key in ("name", "phone", "address") if kwargs.get(key)}
        if not updates:
            raise ToolExecutionError("No profile fields to update")
        profile = self._db.update_profile(user_id, updates)
        if profile is None:
            raise ToolExecutionError("Profile not found")
        return {"profile": profile, "message": "Profil mis à jour avec succès"}


class GetPaymentMethodsTool(Tool):
    name = "get_payment_methods"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        return {"payment_methods": self._db.list_payment_methods(user_id)}
