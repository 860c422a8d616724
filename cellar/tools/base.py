"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """Base class for all assistant tool handlers.

    A handler is bound to the manifest entry of the same ``name``; arguments
    are validated against that entry's schema before ``run`` is called.
    """

    name: str

    @abstractmethod
    async def run(self, user_id: str, **kwargs: Any) -> dict[str, Any]:
        """Execute tool with validated arguments on behalf of ``user_id``."""
