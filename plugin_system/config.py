from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import os


class Settings(BaseSettings):
    """Application settings loaded from .env.plugins (or custom env file)"""

    # Allow overriding env_file via PLUGIN_SYSTEM_ENV_FILE environment variable
    model_config = SettingsConfigDict(  # type: ignore[misc]
        env_file=os.environ.get('PLUGIN_SYSTEM_ENV_FILE', '.env.plugins'),
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_CATEGORIES: str = ""

    # Plugin ordering: fail on before/after constraints naming unregistered plugins
    STRICT_CONSTRAINTS: bool = False

    # Bundled plugins
    SECURITY_HEADERS_ENABLED: bool = True
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL.upper()

    @property
    def log_categories(self) -> list[str]:
        if not self.LOG_CATEGORIES:
            return []
        return [cat.strip() for cat in self.LOG_CATEGORIES.split(',') if cat.strip()]

    @property
    def strict_constraints(self) -> bool:
        return self.STRICT_CONSTRAINTS

    @property
    def security_headers_enabled(self) -> bool:
        return self.SECURITY_HEADERS_ENABLED

    @property
    def rate_limit_enabled(self) -> bool:
        return self.RATE_LIMIT_ENABLED

    @property
    def rate_limit_max_requests(self) -> int:
        return self.RATE_LIMIT_MAX_REQUESTS

    @property
    def rate_limit_window(self) -> float:
        """Rate limit window in seconds"""
        return self.RATE_LIMIT_WINDOW_SECONDS


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
