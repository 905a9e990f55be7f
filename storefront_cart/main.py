"""
Storefront Cart Service

Cart and pricing engine for the storefront: line items, totals,
shipping and coupons behind a small HTTP API.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, get_settings
from .core.session import CartSessionManager
from .routes import cart_router

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings: Settings = app.state.settings
    logger.info(f"{settings.app_name} starting up...")
    logger.info(f"Coupon service: {settings.coupon_service_url or 'built-in catalog'}")
    logger.info(f"Cart storage: {settings.cart_storage_dir or 'in-memory'}")

    manager: CartSessionManager = app.state.session_manager
    sweeper = asyncio.create_task(
        manager.sweep_idle_sessions(
            settings.session_max_age_hours,
            settings.session_sweep_interval_seconds,
        )
    )
    app.state.session_sweeper = sweeper

    yield

    logger.info(f"{settings.app_name} shutting down...")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await manager.aclose()


def create_app(
    settings: Optional[Settings] = None,
    session_manager: Optional[CartSessionManager] = None,
) -> FastAPI:
    """Build the FastAPI application with its own session manager"""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Cart and pricing engine for the storefront",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_manager = session_manager or CartSessionManager.from_settings(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(cart_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "storefront-cart"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront_cart.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
