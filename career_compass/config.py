"""
Configuration Management
Environment-based configuration for the Supabase backend, sessions and logging
"""

from typing import List, Optional

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

# Used when SUPABASE_URL / SUPABASE_ANON_KEY are not set
PLACEHOLDER_SUPABASE_URL = "https://placeholder-project.supabase.co"
PLACEHOLDER_SUPABASE_KEY = "placeholder.anon-key"


class Settings(BaseSettings):
    # App config
    app_name: str = "Career Compass"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"

    # Supabase
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    site_url: str = "http://localhost:8000"

    # Redis (browser session storage)
    redis_url: str = "redis://localhost:6379"
    redis_db: int = 0

    # Session cookie
    session_cookie_name: str = "cc_session"
    session_ttl_seconds: int = 60 * 60 * 24 * 7
    session_cookie_secure: bool = False

    # CORS
    cors_origins: List[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("console", "json"):
            raise ValueError('log_format must be "console" or "json"')
        return v

    @field_validator('session_ttl_seconds')
    @classmethod
    def validate_session_ttl(cls, v):
        if v < 60:
            raise ValueError('Session TTL must be at least 60 seconds')
        return v

    @property
    def placeholder_mode(self) -> bool:
        """True when the Supabase credentials are missing"""
        return not (self.supabase_url and self.supabase_anon_key)

    @property
    def backend_url(self) -> str:
        return self.supabase_url or PLACEHOLDER_SUPABASE_URL

    @property
    def backend_key(self) -> str:
        return self.supabase_anon_key or PLACEHOLDER_SUPABASE_KEY

    @property
    def oauth_redirect_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/auth/callback"

    def log_config(self):
        """Log configuration (without sensitive data)"""
        logger.info("Environment", environment=self.environment)
        logger.info("Site URL", site_url=self.site_url)
        logger.info("Redis", url=self.redis_url, db=self.redis_db)
        if self.placeholder_mode:
            logger.warning(
                "Missing Supabase environment variables. Using placeholder values; "
                "authentication and data features will not work until SUPABASE_URL "
                "and SUPABASE_ANON_KEY are set."
            )
        else:
            logger.info("Supabase", url=self.supabase_url)


settings = Settings()
