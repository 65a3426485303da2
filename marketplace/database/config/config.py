"""
Configuration: Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Centralized, strongly-typed application configuration using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Secrets (`SECRET_KEY`, `AES_SECRET_KEY`) are required; a missing value raises
  a validation error at import time.
- `extra="ignore"`: unknown env vars are ignored.

Usage
-----
from marketplace.database.config.config import settings

db_name = settings.DB_DATABASE_NAME
passphrase = settings.AES_SECRET_KEY
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    FRONTEND_URL: str = Field("http://localhost:3000", description="Base URL of the frontend client application (CORS origin).")
    DB_DRIVER_NAME: str = Field("sqlite", description="Database driver (e.g., `postgresql+psycopg2`, `sqlite`).")
    DB_USERNAME: Optional[str] = Field(None, description="Database username credential.")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password credential.")
    DB_HOST: Optional[str] = Field(None, description="Hostname or IP address of the database server.")
    DB_PORT: Optional[int] = Field(None, description="Port of the database server.")
    DB_DATABASE_NAME: str = Field("marketplace.db", description="Name of the database (file path for sqlite).")
    SECRET_KEY: str = Field(..., description="Secret key for signing JWT access tokens.")
    ALGORITHM: str = Field("HS256", description="JWT signing algorithm.")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 30, description="Duration (in minutes) before access tokens expire.")
    AES_SECRET_KEY: str = Field(..., description="Static passphrase used to encrypt request and response bodies.")
    UPLOAD_DIR: str = Field("uploads", description="Directory where `media` and `collection_images` uploads are stored.")
    EMAIL_ENABLED: bool = Field(False, description="Send transactional emails through SMTP when true.")
    SMTP_HOST: str = Field("smtp.gmail.com", description="SMTP server hostname.")
    SMTP_PORT: int = Field(587, description="SMTP server port (STARTTLS).")
    SENDER_EMAIL: Optional[str] = Field(None, description="Default email address used for sending application emails.")
    APP_PASSWORD: Optional[str] = Field(None, description="Application-specific password for the SMTP account.")
    PRESENCE_CLEANUP_INTERVAL_SECONDS: int = Field(300, description="How often idle chat sockets are pruned.")
    PRESENCE_IDLE_TIMEOUT_SECONDS: int = Field(1800, description="Idle time after which a chat socket is pruned.")
    LOG_LEVEL: str = Field("INFO", description="Log level for the application logger.")
    ADMIN_EMAIL: str = Field("admin@example.com", description="Inbox that receives contact and feedback messages.")
    SUPPORT_EMAIL: str = Field("support@example.com", description="Inbox that receives support requests.")
    BASE_URL: str = Field("http://localhost:8000", description="Public base URL of this API, used to build links to uploaded files.")
    SUPER_ADMIN_USERNAME: Optional[str] = Field(None, description="Username of the super admin created at startup when missing.")
    SUPER_ADMIN_EMAIL: Optional[str] = Field(None, description="Email of the super admin created at startup when missing.")
    SUPER_ADMIN_PASSWORD: Optional[str] = Field(None, description="Password of the super admin created at startup when missing.")


# Singleton instance of Settings, ready to be imported across the app
settings = Settings()
"""Defines a Settings object that contains the contents of the .env file"""
