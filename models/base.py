"""
Base schemas and mixins for all models.

API payloads use camelCase keys; Python attributes stay snake_case.
"""

from decimal import Decimal
from math import ceil
from typing import Annotated, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


# Money is kept as Decimal internally and rendered as a JSON number.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
        - camelCase aliases, snake_case names accepted too
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TimestampMixin(BaseSchema):
    """Add timestamps to response models."""
    created_at: datetime
    updated_at: Optional[datetime] = None


class Pagination(BaseSchema):
    """Pagination block returned next to list payloads."""
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=ceil(total / limit) if limit else 0
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
