"""Product schemas (DTOs)."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


def _strip_required(value: str | None, field_name: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) < 2:
        raise ValueError(f"{field_name} must be at least 2 characters")
    return value


# Request schemas
class ProductCreateRequest(BaseModel):
    """Create product request."""

    name: str = Field(..., min_length=2, max_length=200)
    description: str | None = Field(None, max_length=1000)
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    category: str | None = Field(None, max_length=100)
    stock_quantity: int = Field(0, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _strip_required(value, "Name")


class ProductUpdateRequest(BaseModel):
    """Partial product update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=200)
    description: str | None = Field(None, max_length=1000)
    price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    category: str | None = Field(None, min_length=1, max_length=100)
    stock_quantity: int | None = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        return _strip_required(value, "Name")


# Response schemas
class ProductResponse(BaseModel):
    """Product response."""

    id: int
    name: str
    description: str
    price: float
    category: str
    stock_quantity: int
    created_at: datetime
    created_by_user_id: int | None = None

    model_config = {"from_attributes": True}
