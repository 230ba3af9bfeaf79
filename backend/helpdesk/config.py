"""Application settings and configuration helpers."""
from functools import lru_cache
import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .enums import Language

load_dotenv()


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(
        default="sqlite+aiosqlite:///./helpdesk.db", alias="DATABASE_URL"
    )
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    access_token_expires_minutes: int = Field(default=60 * 24, alias="ACCESS_TOKEN_EXPIRES_MINUTES")
    remember_token_expires_minutes: int = Field(
        default=60 * 24 * 30, alias="REMEMBER_TOKEN_EXPIRES_MINUTES"
    )
    purpose_token_minutes: int = Field(default=60, alias="PURPOSE_TOKEN_MINUTES")
    max_failed_access_attempts: int = Field(default=5, alias="MAX_FAILED_ACCESS_ATTEMPTS")
    lockout_minutes: int = Field(default=5, alias="LOCKOUT_MINUTES")

    default_user_password: str = Field(default="IoT@2024", alias="DEFAULT_USER_PASSWORD")
    default_language: Language = Field(default=Language.ENGLISH, alias="DEFAULT_LANGUAGE")

    recover_link: str = Field(default="http://localhost:4200/recover/", alias="RECOVER_LINK")
    review_link: str = Field(default="http://localhost:4200/link/", alias="REVIEW_LINK")

    # Empty host disables mail transport
    smtp_host: str = Field(default="", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str = Field(default="", alias="SMTP_USER")
    smtp_password: str = Field(default="", alias="SMTP_PASSWORD")
    mail_sender_name: str = Field(default="Easy Web", alias="MAIL_SENDER_NAME")
    mail_sender_address: str = Field(
        default="noreply.easyweb@example.com", alias="MAIL_SENDER_ADDRESS"
    )
    support_sender_name: str = Field(default="Easy Web Support", alias="SUPPORT_SENDER_NAME")
    support_sender_address: str = Field(
        default="noreply.easyweb_support@example.com", alias="SUPPORT_SENDER_ADDRESS"
    )

    max_attachment_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_ATTACHMENT_BYTES")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Every field can be overridden by the environment variable named in its
    alias; unset variables keep the model defaults.
    """

    overrides = {
        field.alias: os.environ[field.alias]
        for field in Settings.model_fields.values()
        if field.alias and field.alias in os.environ
    }
    return Settings(**overrides)
