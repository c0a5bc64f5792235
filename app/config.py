"""
Application configuration management
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


# Placeholder keys shipped in example env files; treated as "not configured"
PLACEHOLDER_API_KEYS = {
    "your_development_key_here",
    "your_google_maps_api_key_here",
    "changeme",
}


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "TrustDiner"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = False  # Default to production-safe
    SECRET_KEY: str  # Must be provided via environment
    API_PREFIX: str = "/api/v1"

    @field_validator('SECRET_KEY', 'JWT_SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if not v or v == "your-secret-key-change-this-in-production":
            raise ValueError("Secret keys must be set to a secure value")
        if len(v) < 32:
            raise ValueError("Secret keys must be at least 32 characters long")
        return v

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str  # Must be provided via environment

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if v.startswith('postgresql://'):
            v = v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 40
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_ECHO: bool = False

    # Redis (absent URL falls back to the in-memory cache)
    REDIS_URL: Optional[str] = None
    ENABLE_REDIS: bool = False
    REDIS_KEY_PREFIX: str = "trustdiner:"
    REDIS_MAX_CONNECTIONS: int = 50

    # JWT
    JWT_SECRET_KEY: str  # Must be provided via environment
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Google Places
    GOOGLE_PLACES_API_KEY: Optional[str] = None
    GOOGLE_PLACES_BASE_URL: str = "https://maps.googleapis.com"
    GOOGLE_PLACES_TIMEOUT: float = 10.0
    GOOGLE_PHOTO_MAX_WIDTH: int = 800

    # Search
    SEARCH_CACHE_TTL: int = 300
    SEARCH_MIN_LOCAL_RESULTS: int = 3
    SEARCH_RESULT_LIMIT: int = 20
    SEARCH_BIAS_LAT: float = 51.5074
    SEARCH_BIAS_LNG: float = -0.1278
    SEARCH_BIAS_RADIUS: int = 50000
    LISTING_CACHE_TTL: int = 300

    # Rate Limiting (production only)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Images
    IMAGE_STORAGE_DIR: str = "storage/establishments"
    IMAGE_PUBLIC_PREFIX: str = "/images/establishments"

    # Users
    USER_DELETION_GRACE_DAYS: int = 30

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Monitoring
    PROMETHEUS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("CORS_ORIGINS", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV == "testing"

    @property
    def google_places_available(self) -> bool:
        key = self.GOOGLE_PLACES_API_KEY
        return bool(key) and key not in PLACEHOLDER_API_KEYS

    @property
    def use_redis(self) -> bool:
        return bool(self.REDIS_URL) and (self.ENABLE_REDIS or self.is_production)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Create global settings instance
settings = Settings()
