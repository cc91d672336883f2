"""Webhook and partner API schemas (DTOs)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.features.product.schemas import ProductResponse


# Request schemas
class StripeWebhookRequest(BaseModel):
    """Stripe payment event."""

    event_type: str = Field(..., min_length=1, max_length=200)
    event_id: str = Field("", max_length=200)
    data: str = ""


class GenericWebhookRequest(BaseModel):
    action: str = Field(..., min_length=1, max_length=200)
    payload: dict[str, Any] | None = None


# Response schemas
class StripeWebhookResponse(BaseModel):
    received: bool = True
    event_type: str


class GenericWebhookResponse(BaseModel):
    received: bool = True
    action: str
    timestamp: datetime


class PartnerStatusResponse(BaseModel):
    """Partner API status for the calling key."""

    status: str = "operational"
    partner: str
    api_key_name: str
    last_used: datetime | None = None
    expires_at: datetime | None = None
    timestamp: datetime


class PartnerProductsResponse(BaseModel):
    partner: str
    product_count: int
    products: list[ProductResponse]
