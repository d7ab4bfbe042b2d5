from decimal import Decimal
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Content Marketplace"
    API_V1_STR: str = "/api/v1"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "marketplace"
    DATABASE_URL: Optional[str] = None

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Platform economics
    DEFAULT_CURRENCY: str = "USD"
    PLATFORM_COMMISSION_RATE: Decimal = Decimal("0.15")
    MINIMUM_PURCHASE_PRICE: Decimal = Decimal("1.00")
    MINIMUM_SUBSCRIPTION_PRICE: Decimal = Decimal("5.00")
    SUBSCRIPTION_PERIOD_DAYS: int = 30
    MINIMUM_PAYOUT: Decimal = Decimal("50.00")
    INSTANT_PAYOUT_FEE_RATE: Decimal = Decimal("0.02")
    # Reject payouts larger than net earnings minus earlier payouts
    ENFORCE_PAYOUT_BALANCE: bool = True

    # Payment capture
    PAYMENT_PROVIDER: Literal["mock", "http"] = "mock"
    PAYMENT_API_URL: Optional[str] = None
    PAYMENT_API_KEY: Optional[str] = None
    PAYMENT_TIMEOUT_SECONDS: float = 15.0

    # Rate limiting (requests per minute per client IP)
    RATE_LIMIT_PER_MINUTE: int = 100
    PAYMENT_RATE_LIMIT_PER_MINUTE: int = 10

settings = Settings()
