from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Cashfree credentials
    CASHFREE_APP_ID: str
    CASHFREE_SECRET_KEY: str
    CASHFREE_WEBHOOK_SECRET: str
    CASHFREE_ENVIRONMENT: Literal["sandbox", "production"] = "sandbox"

    # Checkout redirects
    CASHFREE_RETURN_URL: Optional[str] = None
    CASHFREE_NOTIFY_URL: Optional[str] = None

    # Gateway client
    CASHFREE_API_VERSION: str = "2023-08-01"
    CASHFREE_TIMEOUT: float = 15.0
    CASHFREE_RETRY_ATTEMPTS: int = 3
    CASHFREE_WEBHOOK_TOLERANCE: int = 300

    # App settings
    APP_NAME: str = "Cashfree Payment Adapter"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def cashfree_options(self) -> dict:
        """Provider options in the shape accepted by ``validate_options``."""
        return {
            "app_id": self.CASHFREE_APP_ID,
            "secret_key": self.CASHFREE_SECRET_KEY,
            "environment": self.CASHFREE_ENVIRONMENT,
            "webhook_secret": self.CASHFREE_WEBHOOK_SECRET,
            "return_url": self.CASHFREE_RETURN_URL,
            "notify_url": self.CASHFREE_NOTIFY_URL,
        }
