from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] | list[Any] = Field(default_factory=dict)
