"""
Environment configuration for the attendance integrity service.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from typing import List, Union
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import validator, Field
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    @staticmethod
    def get_secret_key_default() -> str:
        """Generate a default secret key if not provided"""
        import secrets
        import string
        alphabet = string.ascii_letters + string.digits
        return ''.join(secrets.choice(alphabet) for _ in range(32))

    # Application configuration
    APP_NAME: str = Field(default="Attendance Integrity Engine", alias="PROJECT_NAME")
    APP_VERSION: str = Field(default="1.0.0", alias="PROJECT_VERSION")
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    TIMEZONE: str = Field(default="UTC", alias="TIMEZONE")
    CORS_ORIGINS: List[str] = Field(default=["*"], alias="BACKEND_CORS_ORIGINS")
    AUTO_CREATE_TABLES: bool = True

    # Database configuration
    DATABASE_URL: str = "sqlite:///./attendance.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_POOL_OVERFLOW: int = 10

    # Security configuration
    JWT_SECRET_KEY: str = Field(default_factory=lambda: Settings.get_secret_key_default())
    JWT_ALGORITHM: str = "HS256"

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # Integrity thresholds
    TELEPORT_SPEED_KMH: float = 500.0
    MAX_LOCATION_ACCURACY_M: float = 100.0
    OUT_OF_ZONE_ALERT_THRESHOLD: int = 3
    OUT_OF_ZONE_WINDOW_MINUTES: int = 60
    FRAUD_LOOKBACK_HOURS: int = 24

    # Attendance rules
    LATE_GRACE_MINUTES: int = 15
    DEFAULT_GEOFENCE_RADIUS_M: int = 100
    FACIAL_MATCH_THRESHOLD: float = 0.5
    STALE_LOCATION_MINUTES: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True
        extra = "ignore"

    # Validators
    @validator('CORS_ORIGINS', pre=True)
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS_ORIGINS from string to list"""
        if isinstance(v, str):
            if v.startswith('[') and v.endswith(']'):
                try:
                    import json
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",")]
        return v

    @validator(
        'TELEPORT_SPEED_KMH',
        'MAX_LOCATION_ACCURACY_M',
        'OUT_OF_ZONE_ALERT_THRESHOLD',
        'OUT_OF_ZONE_WINDOW_MINUTES',
        'FRAUD_LOOKBACK_HOURS',
        'DEFAULT_GEOFENCE_RADIUS_M',
        'STALE_LOCATION_MINUTES',
    )
    def validate_positive(cls, v):
        """Thresholds must be strictly positive"""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @validator('LATE_GRACE_MINUTES')
    def validate_grace(cls, v: int) -> int:
        if v < 0:
            raise ValueError("grace window cannot be negative")
        return v

    @validator('FACIAL_MATCH_THRESHOLD')
    def validate_match_threshold(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("match threshold must be between 0 and 1")
        return v

    @validator('LOG_FORMAT')
    def validate_log_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    def get_database_url(self) -> str:
        return self.DATABASE_URL

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
