import os
from decimal import Decimal
from typing import Dict

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "kind")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "plate")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "kindplate")
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE_SECONDS: int = 1800
    SQL_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = False
    # full SQLAlchemy URL, overrides the POSTGRES_* fields when set
    DATABASE_URL: str = ""

    # Redis
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    # comma separated; empty means REDIS_HOST only
    REDIS_HOSTS: str = ""
    LOCK_RETRY_COUNT: int = 3
    LOCK_RETRY_DELAY: float = 0.2

    # Cart
    CART_BACKEND: str = "redis"  # redis | database
    CART_MAX_QUANTITY: int = 100
    CART_VIEW_TTL_SECONDS: int = 300
    OFFER_VIEW_TTL_SECONDS: int = 300

    # Checkout
    SERVICE_FEE: Decimal = Decimal("50")
    CURRENCY: str = "RUB"
    DEFAULT_PICKUP_START: str = "00:00"
    DEFAULT_PICKUP_END: str = "19:00"
    DRAFT_ORDER_TTL_MINUTES: int = 60

    # Payments
    PAYMENT_REDIRECT_DELAY_MS: int = 1000
    PAYMENT_PROVIDER_URLS: Dict[str, str] = {
        "yookassa": "https://yookassa.ru/payment",
        "sbp": "https://sbp.ru/payment",
    }
    IDEMPOTENCY_TTL_HOURS: int = 24

    # Pickup QR
    QR_SECRET: str = "change-me"
    QR_TTL_SECONDS: int = 300

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()
