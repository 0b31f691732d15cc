from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # DB
    DATABASE_URL: str = "sqlite:///./grocery.db"
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Trips
    TRIP_REOPEN_GRACE_MINUTES: int = 30

    # Cleanup job (must stay longer than the re-open grace window)
    CLEANUP_GRACE_HOURS: int = 2
    CLEANUP_INTERVAL_SECONDS: int = 15 * 60
    CLEANUP_SCHEDULER_ENABLED: bool = True

    # Price history backfill
    BACKFILL_BATCH_SIZE: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
