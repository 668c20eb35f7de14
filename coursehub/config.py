from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    APP_NAME: str = "CourseHub API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    FRONTEND_URL: str = "http://localhost:5173"

    # Database
    DATABASE_URL: str = "sqlite:///./coursehub.db"

    # Security
    JWT_SECRET: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False
    BCRYPT_ROUNDS: int = 10
    REQUIRE_EMAIL_VERIFICATION: bool = True
    VERIFICATION_TOKEN_HOURS: int = 24
    RESET_TOKEN_HOURS: int = 1

    # Payments
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    CURRENCY: str = "usd"
    PAYMENT_SUCCESS_URL: str = "http://localhost:5173/payment-success"
    PAYMENT_CANCEL_URL: str = "http://localhost:5173/payment-cancel"

    # Uploads
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    MAX_UPLOAD_BYTES: int = 200 * 1024 * 1024

    # Mail
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    MAIL_FROM: str = "no-reply@coursehub.local"

    # Seed admin
    ADMIN_EMAIL: str = "admin@coursehub.local"
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"


settings = Settings()
