from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False
    APP_NAME: str = "subscribe"
    version: str = "0.1.0"
    APP_DATABASE_DSN: str = "sqlite:////tmp/subscribe.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Membership defaults, used when a plan is not a custom membership
    DEFAULT_TRIAL_DAYS: int = 0
    DEFAULT_GRACE_DAYS: int = 0
    DEFAULT_MEMBERSHIP_PRICE: Decimal = Decimal("0")
    IS_TRIAL_INCLUSIVE: bool = False

    # Invoicing
    DEFAULT_CURRENCY: str = "USD"
    INVOICE_DUE_DAYS: int = 0

    # Upper bound on renewals applied in one pass for a delinquent service
    RENEWAL_CATCH_UP_LIMIT: int = 36

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
