# app/core/config.py
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "Seen Group Admin API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # si viene DATABASE_URL se ignoran los DB_* (tests usan sqlite+aiosqlite)
    DATABASE_URL: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "seen"
    DB_PASSWORD: str = ""
    DB_NAME: str = "seen_admin"

    # --- 2FA ---
    TWOFA_ISSUER: str = "Seen Group"
    TOTP_WINDOW: int = Field(1, ge=0, le=10)
    TOTP_ENGINE: Literal["pyotp", "builtin"] = "pyotp"
    BACKUP_CODES_COUNT: int = 10
    RECOVERY_CODES_COUNT: int = 8
    TWOFA_MAX_ATTEMPTS: int = 10
    TWOFA_ATTEMPT_WINDOW_SECONDS: int = 15 * 60

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")

settings = Settings()  # type: ignore[call-arg]
