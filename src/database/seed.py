"""Initial data: admin account, demo products and demo API keys."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.base import utcnow
from src.features.api_key.models import ApiKey
from src.features.api_key.service import ApiKeyService, generate_key
from src.features.product.models import Product
from src.features.user.models import User, UserRole, normalize_email

logger = logging.getLogger(__name__)

ADMIN_FULL_NAME = "System Administrator"
ADMIN_BIRTH_DATE = date(1990, 1, 1)

SAMPLE_PRODUCTS = [
    ("Laptop Pro", "High-performance laptop", Decimal("1299.99"), "Electronics", 50),
    ("Wireless Mouse", "Ergonomic wireless mouse", Decimal("29.99"), "Accessories", 200),
    ("Mechanical Keyboard", "RGB mechanical keyboard", Decimal("149.99"), "Accessories", 75),
    ("Office Chair", "Ergonomic office chair", Decimal("299.99"), "Furniture", 30),
    ("USB-C Hub", "7-in-1 USB-C hub", Decimal("49.99"), "Accessories", 100),
]


@dataclass(frozen=True)
class DemoApiKey:
    prefix: str
    name: str
    owner: str
    scopes: tuple[str, ...]


DEMO_API_KEYS = (
    DemoApiKey("sk_live_", "Stripe Webhook", "stripe", ("webhooks",)),
    DemoApiKey("pk_live_", "Partner API Access", "partner_xyz", ("products:read", "orders:read")),
)


async def seed_initial_admin(
    session: AsyncSession, email: str | None = None, password: str | None = None
) -> User | None:
    """Create the first Admin account unless an admin already exists.

    Credentials default to SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD; nothing is
    created when they are unset.
    """
    email = email or settings.seed_admin_email
    password = password or settings.seed_admin_password
    if not email or not password:
        return None

    existing = await session.scalar(select(User).where(User.role == UserRole.ADMIN.value).limit(1))
    if existing is not None:
        logger.info("Admin account already present, skipping seed")
        return None

    email = normalize_email(email)
    if await session.scalar(select(User).where(User.email == email)) is not None:
        logger.warning(f"Cannot seed admin: {email} is already registered as a regular user")
        return None

    admin = User(
        email=email,
        full_name=ADMIN_FULL_NAME,
        birth_date=ADMIN_BIRTH_DATE,
        hashed_password=User.hash_password(password),
        role=UserRole.ADMIN.value,
    )
    session.add(admin)
    await session.flush()
    logger.info(f"Seeded admin account {email}")
    return admin


async def seed_sample_products(session: AsyncSession) -> int:
    """Insert the demo catalog into an empty products table. Returns rows inserted."""
    count = await session.scalar(select(func.count()).select_from(Product))
    if count:
        return 0

    session.add_all(
        Product(name=name, description=description, price=price, category=category, stock_quantity=stock)
        for name, description, price, category, stock in SAMPLE_PRODUCTS
    )
    await session.flush()
    logger.info(f"Seeded {len(SAMPLE_PRODUCTS)} sample products")
    return len(SAMPLE_PRODUCTS)


async def seed_default_api_keys(session: AsyncSession) -> dict[str, tuple[ApiKey, bool]]:
    """Ensure one demo key per demo owner exists.

    Returns:
        Mapping of owner to (key record, created flag)

    """
    seeded: dict[str, tuple[ApiKey, bool]] = {}
    expires_at = utcnow() + timedelta(days=365)

    for demo in DEMO_API_KEYS:
        existing = await ApiKeyService.get_api_key_by_owner(session, demo.owner)
        if existing is not None:
            seeded[demo.owner] = (existing, False)
            continue

        api_key = await ApiKeyService.create_api_key(
            session,
            key=generate_key(demo.prefix),
            name=demo.name,
            owner=demo.owner,
            scopes=list(demo.scopes),
            expires_at=expires_at,
        )
        seeded[demo.owner] = (api_key, True)

    return seeded
