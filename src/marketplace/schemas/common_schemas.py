from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PaginationResponse(BaseModel):
    """Cursor pagination metadata; ``next_cursor`` is the last product id returned"""
    limit: int = Field(ge=1)
    count: int = Field(ge=0)
    has_more: bool
    next_cursor: Optional[int] = None


class MoneyField(BaseModel):
    """An amount in minor units plus its ISO currency code"""
    cents: int = Field(ge=0)
    currency: str = "USD"

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        if len(v) != 3:
            raise ValueError("Currency must be 3-character code")
        return v.upper()
