from pydantic_settings import BaseSettings, SettingsConfigDict


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
    app_name: str = "LinkSnap"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # URL Shortener specific
    base_url: str = "http://localhost:8000"
    short_url_length: int = 6
    max_retries: int = 5

    # Storage backend selection
    storage_type: str = "json"  # Options: "json", "postgresql" (alias "postgres")

    # JSON file storage
    json_storage_path: str = "data/urls.json"
    json_storage_strict: bool = True  # False = treat an unreadable file as empty

    # Relational storage (empty url = fall back to JSON storage)
    database_url: str = ""
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_echo: bool = False

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
