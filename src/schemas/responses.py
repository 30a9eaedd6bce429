"""Shared API schema bases and the error envelope."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response base: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StrictCamelModel(CamelModel):
    """Request base: unknown fields are rejected instead of ignored."""

    model_config = ConfigDict(extra="forbid")


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")
    retryable: bool = False

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    error: ErrorBody


class PageMeta(CamelModel):
    total: int
    limit: int
    offset: int
