from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    # Session cookie lives for 7 days
    access_token_expire_minutes: int = Field(60 * 24 * 7, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    auth_cookie_name: str = Field("auth-token", alias="AUTH_COOKIE_NAME")
    auth_cookie_secure: bool = Field(False, alias="AUTH_COOKIE_SECURE")

    # Shared secret required to create accounts; registration is closed when unset
    system_registration_key: Optional[str] = Field(None, alias="SYSTEM_REGISTRATION_KEY")

    default_admin_email: Optional[str] = Field(None, alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: Optional[str] = Field(None, alias="DEFAULT_ADMIN_PASSWORD")
    default_admin_school: str = Field("Default School", alias="DEFAULT_ADMIN_SCHOOL")

    africastalking_username: Optional[str] = Field(None, alias="AFRICASTALKING_USERNAME")
    africastalking_api_key: Optional[str] = Field(None, alias="AFRICASTALKING_API_KEY")
    africastalking_sender_id: Optional[str] = Field(None, alias="AFRICASTALKING_SENDER_ID")
    sms_timeout_seconds: float = Field(15.0, alias="SMS_TIMEOUT_SECONDS")
    default_country_code: str = Field("+254", alias="DEFAULT_COUNTRY_CODE")

    recent_payments_window_days: int = Field(7, alias="RECENT_PAYMENTS_WINDOW_DAYS")
    top_debtors_limit: int = Field(5, alias="TOP_DEBTORS_LIMIT")
    balance_alert_threshold: int = Field(10000, alias="BALANCE_ALERT_THRESHOLD")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
