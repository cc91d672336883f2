"""Product catalog router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.auth.dependencies import require_policy
from src.features.auth.policies import PolicyName
from src.features.auth.principal import Principal

from .schemas import ProductCreateRequest, ProductResponse, ProductUpdateRequest
from .service import ADULT_CATEGORY, ProductService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/products", tags=["Products"])


# Public endpoints
@router.get("", response_model=list[ProductResponse])
async def list_products(session: AsyncSession = Depends(get_db_session)):
    """List all products."""
    return await ProductService.list_products(session)


@router.get("/adult/list", response_model=list[ProductResponse])
async def list_adult_products(
    principal: Principal = Depends(require_policy(PolicyName.MUST_BE_OVER_18)),
    session: AsyncSession = Depends(get_db_session),
):
    """List age-restricted products (18+ only)."""
    return await ProductService.list_products(session, category=ADULT_CATEGORY)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a product by id."""
    return await ProductService.get_product(session, product_id)


# User endpoints
@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreateRequest,
    response: Response,
    principal: Principal = Depends(require_policy(PolicyName.USER_ONLY)),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a product (User role)."""
    product = await ProductService.create_product(session, data, principal.user_id)
    await session.commit()
    response.headers["Location"] = f"{settings.api_prefix}{router.prefix}/{product.id}"
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdateRequest,
    principal: Principal = Depends(require_policy(PolicyName.USER_ONLY)),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a product (User role). Omitted fields are left unchanged."""
    product = await ProductService.update_product(session, product_id, data)
    await session.commit()
    return product


# Admin endpoints
@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    principal: Principal = Depends(require_policy(PolicyName.ADMIN_ONLY)),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a product (admin only)."""
    await ProductService.delete_product(session, product_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
