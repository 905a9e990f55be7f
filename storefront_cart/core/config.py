"""Cart Engine Configuration"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Storefront Cart"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8002

    # Pricing
    currency: str = "INR"
    free_shipping_threshold: Decimal = Decimal("500.00")
    flat_shipping_rate: Decimal = Decimal("50.00")

    # Coupon service; the built-in catalog is used when no URL is set
    coupon_service_url: Optional[str] = None
    coupon_service_timeout: float = 10.0

    # Persistence; carts are kept in memory when no directory is set
    cart_storage_dir: Optional[str] = None

    # Sessions
    session_max_age_hours: float = 24
    session_sweep_interval_seconds: float = 300.0

    class Config:
        env_prefix = "CART_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def coupon_service_configured(self) -> bool:
        """Check if a remote coupon service is configured"""
        return bool(self.coupon_service_url)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
