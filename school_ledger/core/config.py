from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./school_ledger.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("127.0.0.1", alias="HOST")
    port: int = Field(8000, alias="PORT")

    notification_webhook_url: Optional[str] = Field(None, alias="NOTIFICATION_WEBHOOK_URL")
    notification_timeout_seconds: float = Field(5.0, alias="NOTIFICATION_TIMEOUT_SECONDS")

    default_payment_method: str = Field("cash", alias="DEFAULT_PAYMENT_METHOD")
    # Month (1-12) of the first generated installment due date; the school year starts in September.
    schedule_start_month: int = Field(9, alias="SCHEDULE_START_MONTH")
    refund_admin_fee_percentage: Decimal = Field(Decimal("0"), alias="REFUND_ADMIN_FEE_PERCENTAGE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
