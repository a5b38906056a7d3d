import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # API Config
    API_TITLE: str = "Storefront Cart API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Cart, coupon and checkout API for the storefront"

    # Redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Carrito
    CART_STORAGE_BACKEND: str = os.getenv("CART_STORAGE_BACKEND", "redis")  # redis | memory
    CART_TTL_SECONDS: int = int(os.getenv("CART_TTL_SECONDS", str(7 * 24 * 60 * 60)))  # 0 = sin expiración

    # Checkout
    CHECKOUT_TAX_RATE: float = float(os.getenv("CHECKOUT_TAX_RATE", "0.03"))

    # API remota de la tienda (cupones, envíos, órdenes)
    STOREFRONT_API_URL: str = os.getenv("STOREFRONT_API_URL", "http://localhost:8000/api")
    STOREFRONT_API_TIMEOUT: float = float(os.getenv("STOREFRONT_API_TIMEOUT", "10"))

    # Security & JWT
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key-change-in-production-PLEASE")
    ALGORITHM: str = "HS256"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"

settings = Settings()
