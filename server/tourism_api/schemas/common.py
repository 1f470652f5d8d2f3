"""Common Pydantic schemas."""

from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, ValidationInfo
from pydantic.alias_generators import to_camel

# Decimal in memory, JSON number on the wire
MoneyAmount = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

Percentage = MoneyAmount


class ApiModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        """Serialise for a JSONResponse body."""
        return self.model_dump(mode="json", by_alias=True)


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Stable human-readable message")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(None, description="Application-specific error code")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


class Pagination(ApiModel):
    """Page metadata returned with every list response."""

    total: int = Field(..., ge=0, description="Total number of matching records")
    page: int = Field(..., ge=1, description="Current page (1-based)")
    limit: int = Field(..., ge=1, description="Page size")
    pages: int = Field(..., ge=0, description="Total number of pages")


class MessageResponse(ApiModel):
    """Plain acknowledgement body."""

    message: str


def reject_null(value, info: ValidationInfo):
    """Partial updates may omit a field, but may not clear one the record requires."""
    if value is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return value
