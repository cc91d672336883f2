import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI
from slowapi.middleware import SlowAPIMiddleware

from src.config.logging_config import setup_logging
from src.config.settings import settings
from src.database.client import close_db, get_session, init_db
from src.database.seed import seed_initial_admin, seed_sample_products
from src.features.auth.dependencies import authenticate_request
from src.features.auth.router import router as auth_router
from src.features.product.router import router as product_router
from src.features.user.router import router as user_router
from src.features.webhook.router import partner_router, webhook_router
from src.shared.errors.handlers import register_exception_handlers
from src.shared.middlewares.request_id import RequestIdMiddleware
from src.shared.rate_limit import limiter

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    await init_db()
    async with get_session() as session:
        await seed_initial_admin(session)
        if settings.seed_sample_products:
            await seed_sample_products(session)
    logger.info(f"{settings.app_name} started ({settings.environment})")
    yield
    # Shutdown
    await close_db()


# Every request runs the gate pipeline; routes then apply their own policy
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    dependencies=[Depends(authenticate_request)],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Outermost, so every response (errors included) carries X-Request-ID
app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)

# Router Registration
routers: list[APIRouter] = [
    auth_router,
    user_router,
    product_router,
    webhook_router,
    partner_router,
]

for router in routers:
    app.include_router(router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": settings.app_name, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
