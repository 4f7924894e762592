"""
Configuration settings for the application
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

PAYPAL_SANDBOX_API = "https://api-m.sandbox.paypal.com"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # PayPal Orders API configuration; production uses https://api-m.paypal.com
    paypal_client_id: Optional[str] = Field(default=None, alias="PAYPAL_CLIENT_ID")
    paypal_secret_key: Optional[str] = Field(default=None, alias="PAYPAL_SECRET_KEY")
    paypal_api_base: str = Field(default=PAYPAL_SANDBOX_API, alias="PAYPAL_API_BASE")
    brand_name: str = Field(default="Proposal Generator", alias="BRAND_NAME")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # JWTs are issued by the managed auth backend and only verified here
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_audience: Optional[str] = Field(default="authenticated", alias="JWT_AUDIENCE")

    # Infrastructure configuration
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./sql_app.db", alias="DATABASE_URL")

    # Frontend configuration
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")
    # Base URL the checkout flow uses to reach this API
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore",
    }


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")
