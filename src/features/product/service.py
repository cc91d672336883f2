"""Product service layer."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import ProductNotFound
from .models import Product
from .schemas import ProductCreateRequest, ProductUpdateRequest

logger = logging.getLogger(__name__)

ADULT_CATEGORY = "Adult"
DEFAULT_CATEGORY = "Uncategorized"


class ProductService:
    """Service for product catalog operations."""

    @staticmethod
    async def list_products(session: AsyncSession, category: str | None = None) -> list[Product]:
        stmt = select(Product).order_by(Product.id)
        if category is not None:
            stmt = stmt.where(Product.category == category)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_product(session: AsyncSession, product_id: int) -> Product:
        """Get a product by id.

        Raises:
            ProductNotFound: If no such product exists

        """
        product = await session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    async def create_product(session: AsyncSession, data: ProductCreateRequest, user_id: int | None) -> Product:
        product = Product(
            name=data.name,
            description=data.description or "",
            price=data.price,
            category=data.category or DEFAULT_CATEGORY,
            stock_quantity=data.stock_quantity,
            created_by_user_id=user_id,
        )
        session.add(product)
        await session.flush()
        logger.info(f"Product {product.id} created by user {user_id}")
        return product

    @staticmethod
    async def update_product(session: AsyncSession, product_id: int, data: ProductUpdateRequest) -> Product:
        """Apply the fields present in ``data``; blank strings are ignored."""
        product = await ProductService.get_product(session, product_id)

        for field, value in data.model_dump(exclude_none=True).items():
            if isinstance(value, str) and not value.strip():
                continue
            setattr(product, field, value)

        await session.flush()
        return product

    @staticmethod
    async def delete_product(session: AsyncSession, product_id: int) -> None:
        product = await ProductService.get_product(session, product_id)
        await session.delete(product)
        await session.flush()
        logger.info(f"Product {product_id} deleted")
