"""
Application configuration settings.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from loguru import logger


class Settings(BaseSettings):
    """Application settings."""

    # Host catalog database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/catalog.db"

    # Search engine connection
    ENGINE_HOST: str = "localhost"
    ENGINE_PORT: int = 8108
    ENGINE_PROTOCOL: str = "http"
    ENGINE_API_KEY: str = ""
    ENGINE_COLLECTION_PREFIX: str = ""
    ENGINE_TIMEOUT: float = 30.0
    # Largest page * per_page the engine will serve
    ENGINE_MAX_RESULT_WINDOW: int = 10000

    # Search listing paging policy
    SEARCH_DEFAULT_PER_PAGE: int = 12
    SEARCH_MIN_PER_PAGE: int = 12
    SEARCH_FETCH_ALL_CAP: int = 60  # upper bound when the host asks for "all" (-1)

    # Suggestions
    SUGGEST_PRODUCTS_LIMIT: int = 6
    SUGGEST_CATEGORIES_LIMIT: int = 5
    SUGGEST_BRANDS_LIMIT: int = 5
    RECOMMENDED_PRODUCTS_LIMIT: int = 6

    # Indexing
    INDEX_BATCH_SIZE: int = 50
    SALE_BOOST: float = 1.5

    # Admin
    ADMIN_API_KEY: str = "change-me-admin-key"

    # Application
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1
    CORS_ORIGINS: str = "http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "./data/logs/app.log"

    @field_validator("ENGINE_PROTOCOL", mode="before")
    @classmethod
    def validate_protocol(cls, v):
        v = (v or "http").strip().lower()
        if v not in ("http", "https"):
            raise ValueError("ENGINE_PROTOCOL must be 'http' or 'https'")
        return v

    @field_validator("ENGINE_API_KEY", mode="before")
    @classmethod
    def validate_engine_api_key(cls, v):
        if not v:
            logger.warning("ENGINE_API_KEY is empty. Engine requests will be rejected by a secured server.")
        return v

    @field_validator("ADMIN_API_KEY", mode="before")
    @classmethod
    def validate_admin_key(cls, v):
        if v == "change-me-admin-key":
            logger.warning("Using default ADMIN_API_KEY. Change this in production!")
        return v

    @field_validator("SEARCH_MIN_PER_PAGE", "SEARCH_FETCH_ALL_CAP", "SEARCH_DEFAULT_PER_PAGE")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("page size settings must be positive")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@dataclass(frozen=True)
class EngineConnection:
    """Read-only engine connection parameters shared by every request."""

    protocol: str
    host: str
    port: int
    api_key: str
    collection_prefix: str = ""
    timeout: float = 30.0

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    @classmethod
    def from_settings(cls, s: "Settings") -> "EngineConnection":
        return cls(
            protocol=s.ENGINE_PROTOCOL,
            host=s.ENGINE_HOST,
            port=s.ENGINE_PORT,
            api_key=s.ENGINE_API_KEY,
            collection_prefix=s.ENGINE_COLLECTION_PREFIX,
            timeout=s.ENGINE_TIMEOUT,
        )


# Global settings instance
settings = Settings()


@lru_cache(maxsize=1)
def get_engine_connection() -> EngineConnection:
    """Build the engine connection once per process."""
    return EngineConnection.from_settings(settings)


def configure_logging() -> None:
    """Install loguru sinks for the application."""
    logger.remove()  # Remove default handler
    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            level=settings.LOG_LEVEL,
            rotation="10 MB",
            retention="30 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
        )
    logger.add(
        lambda msg: print(msg, end=""),
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | {message}"
    )
