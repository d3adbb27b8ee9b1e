"""Error envelope rendered by every service for failed requests."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorMetadataEntry(BaseModel):
    field: str
    value: Any = None
    reason: str


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    http_code: int = Field(..., alias="httpCode")
    message: str
    metadata: list[ErrorMetadataEntry] = Field(default_factory=list)
