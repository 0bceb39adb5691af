from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(7, alias="REFRESH_TOKEN_EXPIRE_DAYS")

    # Students whose rounded percentage is below this are defaulters / at-risk
    default_attendance_threshold: int = Field(75, alias="DEFAULT_ATTENDANCE_THRESHOLD", ge=0, le=100)
    # Teachers may only open sessions for allocated subjects and mark their own sessions
    enforce_session_ownership: bool = Field(True, alias="ENFORCE_SESSION_OWNERSHIP")
    csv_import_max_rows: int = Field(2000, alias="CSV_IMPORT_MAX_ROWS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    # Comma-separated list, e.g. "https://portal.example.edu,http://localhost:3000"
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    bootstrap_admin_email: Optional[str] = Field(None, alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: Optional[str] = Field(None, alias="BOOTSTRAP_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
