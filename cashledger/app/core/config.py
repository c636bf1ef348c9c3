from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./cashledger.db"
    SECRET_KEY: str = "dev-insecure-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS origins for the admin SPA
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Paths that skip the rate limiter and never need a bearer token
    PUBLIC_PATHS: list[str] = ["/health", "/docs", "/openapi.json"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # CSV import
    IMPORT_MAX_BYTES: int = 2 * 1024 * 1024

    # Rate limiting: (limit, window in milliseconds)
    RATE_LIMIT_ENABLED: bool = True
    API_BY_IP_LIMIT: int = 1000
    API_BY_IP_WINDOW_MS: int = 60 * 1000
    IMPORT_BY_USER_LIMIT: int = 10
    IMPORT_BY_USER_WINDOW_MS: int = 60 * 1000


settings = Settings()
