"""Wine catalog lookups. The catalog is shared, so these are not user-scoped."""

from __future__ import annotations

from typing import Any

from cellar.db import Database
from cellar.errors import ToolExecutionError
from cellar.tools.base import Tool

_SEARCH_LIMIT = 10


class SearchWinesTool(Tool):
    """Search active wines by text, type and region."""

    name = "search_wines"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        wines = self._db.search_wines(
            query=kwargs.get("query"),
            wine_type=kwargs.get("type"),
            region=kwargs.get("region"),
            limit=_SEARCH_LIMIT,
        )
        return {"wines": wines}


class GetWineDetailsTool(Tool):
    name = "get_wine_details"

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        wine = self._db.get_wine(kwargs["wine_id"])
        if wine is None:
            raise ToolExecutionError("Wine not found")
        return {"wine": wine}
