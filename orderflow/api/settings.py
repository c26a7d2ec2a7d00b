"""HTTP API configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """API settings loaded from ORDERFLOW_API_* environment variables."""

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS configuration
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Seconds between sweeps expiring past-due callback waits (0 disables)
    sweep_interval: float = 5.0

    # Debug mode
    debug: bool = False

    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = ApiSettings()
