"""
Configuration management for the storefront cart service.
Loads settings from environment variables and AWS Secrets Manager.
"""
import os
import json
import logging
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Optional

logger = logging.getLogger(__name__)


class Config:
    """Application configuration"""

    # Application settings
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "figurine-storefront")
    REGION: str = os.getenv("REGION", "us-east-2")

    # Storage settings ("redis" or "memory")
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis")
    CART_STORAGE_KEY: str = os.getenv("CART_STORAGE_KEY", "cart")

    # Redis settings
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_AUTH_TOKEN: Optional[str] = os.getenv("REDIS_AUTH_TOKEN")
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() in ("1", "true", "yes")

    # Redis connection settings
    REDIS_SOCKET_CONNECT_TIMEOUT: int = 5
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_RETRY_ON_TIMEOUT: bool = True
    REDIS_MAX_CONNECTIONS: int = 50

    # Remote storefront API
    API_BASE_URL: str = os.getenv(
        "API_BASE_URL", "https://kebyzdods1.execute-api.us-east-2.amazonaws.com/dev"
    )
    ADMIN_LOGIN_URL: str = os.getenv("ADMIN_LOGIN_URL", f"{API_BASE_URL}/admin/login")
    API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))

    # Admin sessions
    ADMIN_SESSION_TTL_SECONDS: int = int(os.getenv("ADMIN_SESSION_TTL_SECONDS", str(8 * 60 * 60)))  # 8 hours

    @classmethod
    def load_redis_secrets(cls) -> None:
        """Load Redis authentication token from AWS Secrets Manager"""
        if cls.REDIS_AUTH_TOKEN:
            return  # Already loaded from environment

        secret_name = os.getenv("REDIS_SECRET_NAME")
        if not secret_name:
            return  # No secret name provided, use no auth

        try:
            client = boto3.client("secretsmanager", region_name=cls.REGION)
            response = client.get_secret_value(SecretId=secret_name)
            secret_data = json.loads(response["SecretString"])

            cls.REDIS_AUTH_TOKEN = secret_data.get("auth_token")
            if "endpoint" in secret_data:
                cls.REDIS_HOST = secret_data["endpoint"]
        except (BotoCoreError, ClientError, KeyError, ValueError) as e:
            logger.warning(f"Could not load Redis secrets from Secrets Manager: {e}")
            # Continue without auth token (may fail on connection)

    @classmethod
    def redis_url(cls) -> str:
        """Build the Redis connection URL"""
        scheme = "rediss" if cls.REDIS_SSL else "redis"
        auth = f":{cls.REDIS_AUTH_TOKEN}@" if cls.REDIS_AUTH_TOKEN else ""
        return f"{scheme}://{auth}{cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}"


# Load secrets at module import
Config.load_redis_secrets()
