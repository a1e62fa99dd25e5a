"""Application settings.

All settings are read from environment variables via Pydantic Settings, so the
same code runs locally and in production.
"""

import json
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Core settings.

    - ``database_url``: defaults to a local SQLite file for quick starts.
    - ``admin_emails`` / ``admin_domains``: role policy table, emails or domains
      that are granted the admin role at login.
    - ``identity_secret``: key used by the local signed-token verifier.
    """

    database_url: str = Field(
        default="sqlite:///./storage/edutrack.db", description="SQLAlchemy database URL"
    )
    log_level: str = Field(default="INFO", description="Root log level")
    timezone: str = Field(
        default="UTC", description="Timezone used to cut attendance timestamps into calendar days"
    )

    # comma-separated or a JSON array: "a@x.org,b@y.org" or '["a@x.org"]'
    admin_emails: Annotated[List[str], NoDecode] = Field(default_factory=list)
    admin_domains: Annotated[List[str], NoDecode] = Field(default_factory=list)

    identity_secret: str = Field(
        default="change-me", description="HMAC key for locally signed identity tokens"
    )
    identity_token_ttl_hours: int = 24

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    mail_sender: Optional[str] = None
    frontend_url: str = "http://localhost:5173"

    default_page_size: int = 10
    max_page_size: int = 100

    @field_validator("admin_emails", "admin_domains", mode="before")
    @classmethod
    def split_list(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        value = value.strip()
        if value.startswith("["):
            return json.loads(value)
        return [item.strip() for item in value.split(",") if item.strip()]

    model_config = {
        "env_prefix": "EDUTRACK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached global settings instance."""

    return Settings()
