from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Umami Tracker"
    app_version: str = "1.0.23"
    secret_key: str = "your-secret-key-here-change-in-production"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database (option storage)
    database_url: str = "sqlite:///./umami_tracker.db"

    # Settings store
    settings_store_backend: str = "database"  # Options: "database", "memory"

    # Cache settings
    cache_backend: str = "memory"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 300  # Option cache TTL in seconds

    # Viewer identity
    identity_backend: str = "token"  # Options: "token", "anonymous"
    admin_token: str = ""  # Empty disables admin access entirely
    session_cookie_name: str = "session"

    # Tracking snippet
    default_collector_url: str = "https://tracktheimpact.net/"
    tracker_script_name: str = "umami.js"
    snippet_excluded_paths: List[str] = [
        "/admin",
        "/api",
        "/docs",
        "/redoc",
        "/openapi.json",
    ]

    # Admin form nonce lifetime in seconds
    nonce_max_age: int = 86400

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
