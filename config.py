"""
Runtime configuration

Values come from the environment (and an optional .env file).
Defaults are meant for local development only.
"""

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "ecommerce")
    DATABASE_TIMEOUT_MS: int = int(os.getenv("DATABASE_TIMEOUT_MS", 30000))

    # Server
    PORT: int = int(os.getenv("PORT", 8000))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Security
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-access-secret-change")
    JWT_REFRESH_SECRET: str = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 5))
    REFRESH_TOKEN_EXPIRE_HOURS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_HOURS", 24))

    # Catalog seeding
    CATALOG_SOURCE_URL: str = os.getenv("CATALOG_SOURCE_URL", "https://dummyjson.com/products")
    CATALOG_SEED_LIMIT: int = int(os.getenv("CATALOG_SEED_LIMIT", 30))
    CATALOG_TIMEOUT_SECONDS: float = float(os.getenv("CATALOG_TIMEOUT_SECONDS", 10))


settings = Settings()
