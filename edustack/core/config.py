# edustack/core/config.py - Centralized settings management using Pydantic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional, Union

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    """Application settings with validation and type safety"""

    # Application Environment
    ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")
    DEBUG: bool = Field(default=False, description="Debug mode")
    API_TITLE: str = Field(default="Edustack API", description="API title")
    API_VERSION: str = Field(default="1.0.0", description="API version")

    # Database Configuration
    DATABASE_URL: str = Field(..., description="Database connection URL")
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL queries")
    DATABASE_POOL_SIZE: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0, le=100, description="Max overflow connections")
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, le=300, description="Pool timeout in seconds")
    DATABASE_POOL_RECYCLE: int = Field(default=3600, ge=300, description="Pool recycle time in seconds")

    # JWT Configuration
    JWT_SECRET: str = Field(..., min_length=32, description="JWT signing secret")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=1440, ge=1, le=10080, description="Access token expiry")
    JWT_ISSUER: str = Field(default="edustack", description="JWT issuer")
    JWT_AUDIENCE: str = Field(default="edustack-users", description="JWT audience")

    # CORS Configuration
    CORS_ORIGINS: Union[List[str], str] = Field(default=DEFAULT_CORS_ORIGINS, description="CORS allowed origins")

    # Security Configuration
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=15, description="BCrypt rounds")
    EDUSTACK_SECURE_HEADER_KEY: Optional[str] = Field(
        default=None, description="Shared key required in x-header-secure-key for admin signup"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # School administration
    SCHOOL_LIMIT_PER_USER: int = Field(default=3, ge=1, description="Max schools a single admin may register")

    # Term status reconciliation
    TERM_RECONCILE_ENABLED: bool = Field(default=True, description="Run the daily term status sweep")
    TERM_RECONCILE_HOUR: int = Field(default=0, ge=0, le=23, description="UTC hour of the daily sweep")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables

    @field_validator("ENV")
    @classmethod
    def validate_environment(cls, v):
        allowed_envs = ["dev", "development", "test", "staging", "prod", "production"]
        if v.lower() not in allowed_envs:
            raise ValueError(f"ENV must be one of: {allowed_envs}")
        return v.lower()

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        allowed_prefixes = (
            "postgresql://",
            "postgresql+psycopg2://",
            "postgresql+psycopg://",
            "sqlite://",
        )
        if not v.startswith(allowed_prefixes):
            raise ValueError("DATABASE_URL must be a postgresql or sqlite connection string")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle comma-separated string
            if v.strip():
                return [origin.strip() for origin in v.split(",") if origin.strip()]
            return list(DEFAULT_CORS_ORIGINS)
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENV in ["dev", "development", "test"]


settings = Settings()
