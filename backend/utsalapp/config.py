from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./utsalapp.db"

    # Storage backend: 'memory' (in-process maps) or 'sql' (SQLAlchemy)
    storage_backend: str = "memory"

    # Application
    app_name: str = "Útsala API"
    app_version: str = "1.0.0"
    environment: str = "development"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # JWT Authentication
    jwt_secret_key: str = "jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30  # 30 days

    # Rate limiting
    rate_limit_enabled: bool = True
    view_rate_limit: str = "30/minute"
    auth_rate_limit: str = "10/15minutes"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
