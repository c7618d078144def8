from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_hours: int = 12

    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    postgres_db: str = "hackhub"
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")
    sql_echo: bool = False

    # SMTP settings
    smtp_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_sender: str = "noreply@hackhub.local"

    base_url: str = "http://localhost:8000"

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size: int = 50 * 1024 * 1024

    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    debug: bool = False
    log_level: str = "INFO"

    scheduler_enabled: bool = True
    event_status_refresh_minutes: int = 5

    default_leaderboard_limit: int = 10
    max_leaderboard_limit: int = 100

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    class Config:
        env_file = BASE_DIR / ".env"
        populate_by_name = True
        extra = "ignore"


settings = Settings()
