"""Inbound request bodies."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cellar.errors import InvalidRequest


class MessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /ai-chat``."""

    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(alias="connectionId", min_length=1)
    messages: list[MessageIn] = Field(min_length=1)


class ConnectionCreate(BaseModel):
    """Body of ``POST /ai-connections``."""

    provider: str
    model_name: str = Field(min_length=1)
    api_key: str | None = None
    display_name: str | None = None
    is_active: bool = True


def parse_body(model: type[BaseModel], body: bytes) -> BaseModel:
    try:
        return model.model_validate_json(body or b"{}")
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}" for error in exc.errors()
        )
        raise InvalidRequest(f"Invalid request body: {errors}") from exc
