"""Application configuration."""

from datetime import time
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Cafeteria Ordering API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./cafeteria.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))
    guest_order_token_expire_days: int = int(getenv("GUEST_ORDER_TOKEN_EXPIRE_DAYS", "30"))
    guest_checkout_token_ttl_seconds: int = int(getenv("GUEST_CHECKOUT_TOKEN_TTL_SECONDS", "300"))
    stripe_secret_key: str = getenv("STRIPE_SECRET_KEY", "")
    stripe_webhook_secret: str = getenv("STRIPE_WEBHOOK_SECRET", "")
    stripe_currency: str = getenv("STRIPE_CURRENCY", "aud")
    ordering_window_start: time = time.fromisoformat(getenv("ORDERING_WINDOW_START", "07:00"))
    ordering_window_end: time = time.fromisoformat(getenv("ORDERING_WINDOW_END", "14:00"))
    order_number_max_attempts: int = int(getenv("ORDER_NUMBER_MAX_ATTEMPTS", "3"))
    order_number_retry_max_delay_ms: int = int(getenv("ORDER_NUMBER_RETRY_MAX_DELAY_MS", "100"))
    default_low_stock_threshold: int = int(getenv("DEFAULT_LOW_STOCK_THRESHOLD", "5"))
    default_admin_email: str = getenv("DEFAULT_ADMIN_EMAIL", "admin@cafeteria.local")
    default_admin_password: str = getenv("DEFAULT_ADMIN_PASSWORD", "change-me")


settings: Settings = Settings()
