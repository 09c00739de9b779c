# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./database_warehouse.db"

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    FRONTEND_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Optimistic concurrency: how many times a stock operation is re-run
    # after losing a race on a balance row
    TRANSFER_MAX_RETRIES: int = 10
    TRANSFER_RETRY_BACKOFF: float = 0.02
    # Seconds SQLite waits for a write lock before giving up
    SQLITE_BUSY_TIMEOUT: float = 30.0

    DEFAULT_ACTOR: str = "User"
    DEFAULT_TRANSFER_REASON: str = "Manual transfer"
    TOOL_ACTOR: str = "MCP User"

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
