"""Webhook and partner API routers (API-key authenticated)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.database.dependencies import get_db_session
from src.features.api_key.models import ApiKey
from src.features.auth.dependencies import get_api_key_principal
from src.features.auth.principal import ApiKeyPrincipal
from src.features.product.schemas import ProductResponse
from src.features.product.service import ProductService

from .schemas import (
    GenericWebhookRequest,
    GenericWebhookResponse,
    PartnerProductsResponse,
    PartnerStatusResponse,
    StripeWebhookRequest,
    StripeWebhookResponse,
)

logger = logging.getLogger(__name__)
webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
partner_router = APIRouter(prefix="/partner", tags=["Partner API"])


@webhook_router.post("/stripe", response_model=StripeWebhookResponse)
async def stripe_webhook(data: StripeWebhookRequest, api_key: ApiKeyPrincipal = Depends(get_api_key_principal)):
    """Receive a Stripe payment event. Requires the X-API-Key header."""
    logger.info(f"Stripe webhook received from {api_key.owner}: {data.event_type}")
    return StripeWebhookResponse(event_type=data.event_type)


@webhook_router.post("/generic", response_model=GenericWebhookResponse)
async def generic_webhook(data: GenericWebhookRequest, api_key: ApiKeyPrincipal = Depends(get_api_key_principal)):
    """Receive a generic webhook event. Requires the X-API-Key header."""
    logger.info(f"Generic webhook received from {api_key.owner}: {data.action}")
    return GenericWebhookResponse(action=data.action, timestamp=utcnow())


@partner_router.get("/status", response_model=PartnerStatusResponse)
async def partner_status(
    api_key: ApiKeyPrincipal = Depends(get_api_key_principal),
    session: AsyncSession = Depends(get_db_session),
):
    """Partner API status for the calling key."""
    record = await session.get(ApiKey, api_key.key_id)
    return PartnerStatusResponse(
        partner=api_key.owner,
        api_key_name=api_key.name,
        last_used=record.last_used_at if record else None,
        expires_at=record.expires_at if record else None,
        timestamp=utcnow(),
    )


@partner_router.get("/products", response_model=PartnerProductsResponse)
async def partner_products(
    api_key: ApiKeyPrincipal = Depends(get_api_key_principal),
    session: AsyncSession = Depends(get_db_session),
):
    """Products available to the partner (currently the whole catalog)."""
    products = await ProductService.list_products(session)
    return PartnerProductsResponse(
        partner=api_key.owner,
        product_count=len(products),
        products=[ProductResponse.model_validate(p) for p in products],
    )
