"""
Application configuration settings.
Handles environment variables and application-wide settings.
"""
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application settings
    app_name: str = Field(default="Marketplace API")
    app_version: str = Field(default="1.0.0")
    app_description: str = Field(
        default="A FastAPI-based consumer-to-consumer marketplace similar to eBay"
    )
    debug: bool = Field(default=False)

    # Server settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    reload: bool = Field(default=True)

    # Database settings
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    database_name: str = Field(default="marketplace_db")

    # MongoDB connection settings
    server_selection_timeout_ms: int = Field(
        default=30000, validation_alias="MONGODB_SERVER_SELECTION_TIMEOUT_MS"
    )
    connect_timeout_ms: int = Field(default=30000, validation_alias="MONGODB_CONNECT_TIMEOUT_MS")
    socket_timeout_ms: int = Field(default=30000, validation_alias="MONGODB_SOCKET_TIMEOUT_MS")
    max_pool_size: int = Field(default=10, validation_alias="MONGODB_MAX_POOL_SIZE")
    min_pool_size: int = Field(default=1, validation_alias="MONGODB_MIN_POOL_SIZE")
    retry_writes: bool = Field(default=True, validation_alias="MONGODB_RETRY_WRITES")
    direct_connection: bool = Field(default=False, validation_alias="MONGODB_DIRECT_CONNECTION")

    # Logging settings
    log_level: str = Field(default="INFO")

    # Pagination defaults
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # Business logic settings
    tax_rate: float = Field(default=0.1, ge=0)
    flat_shipping_fee: float = Field(default=5.0, ge=0)
    max_item_quantity: int = Field(default=100)
    recent_conversations_limit: int = Field(default=15)

    # PayPal settings
    paypal_client_id: Optional[str] = Field(default=None)
    paypal_client_secret: Optional[str] = Field(default=None)
    paypal_environment: str = Field(default="sandbox")
    paypal_timeout_seconds: float = Field(default=15.0)

    # Shipping settings
    shipping_label_base_url: str = Field(default="https://api.example.com/shipping-labels")

    # CORS settings
    cors_origins: List[str] = Field(default=["*"])


@lru_cache()
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
