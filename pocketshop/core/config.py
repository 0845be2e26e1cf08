from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "PocketShop"

    # --- Repository Selection ---
    # "demo" keeps everything in RAM, "postgres" talks to DATABASE_URL
    ORDER_REPOSITORY: Literal["demo", "postgres"] = "demo"
    DATABASE_URL: str = "sqlite:///./pocketshop.db"
    REDIS_URL: str | None = None

    # --- Realtime ---
    REALTIME_CHANNEL_PREFIX: str = "pocketshop:orders"

    # --- Store Behaviour ---
    DEFAULT_VENDOR_ID: str = "vendor-demo"
    DEMO_LATENCY_SECONDS: float = 0.0
    SERIALIZE_STATUS_CHANGES: bool = False

    # --- Startup ---
    DB_CONNECT_RETRIES: int = 10
    DB_RETRY_WAIT_SECONDS: float = 3
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # Unknown variables in .env are ignored instead of crashing
    )

settings = Settings()
