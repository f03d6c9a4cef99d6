"""Settings for the notes website, read from environment variables."""

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .domain import ConfigError

PLACEHOLDER_URL = "YOUR_SUPABASE_URL"
PLACEHOLDER_KEY = "YOUR_SUPABASE_ANON_KEY"

_ENV_FIELDS = {
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_ANON_KEY": "supabase_anon_key",
    "NOTES_BACKEND": "backend",
    "NOTES_TABLE": "notes_table",
    "NOTES_SIGNUP_REDIRECT_DELAY": "signup_redirect_delay",
    "NOTES_MESSAGE_TTL": "message_ttl",
    "NOTES_HOST": "host",
    "NOTES_PORT": "port",
    "NOTES_LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    supabase_url: str = ""
    supabase_anon_key: str = ""
    backend: Literal["supabase", "memory"] = "supabase"
    notes_table: str = "notes"
    signup_redirect_delay: float = Field(2.0, ge=0)
    message_ttl: float = Field(5.0, ge=0)
    host: str = "127.0.0.1"
    port: int = Field(8000, ge=1, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def origin(self) -> str:
        """Address the site is served from, used as the e-mail confirmation redirect."""
        return f"http://{self.host}:{self.port}"

    def check(self) -> "Settings":
        """Refuse to start against a missing or placeholder backend.

        Raises:
            ConfigError: If the Supabase URL or key is absent or still a placeholder.
        """
        if self.backend == "memory":
            return self
        if not self.supabase_url or not self.supabase_anon_key:
            raise ConfigError(
                "Supabase URL and Key are required. Please set SUPABASE_URL and "
                "SUPABASE_ANON_KEY with your credentials."
            )
        if self.supabase_url == PLACEHOLDER_URL or self.supabase_anon_key == PLACEHOLDER_KEY:
            raise ConfigError(
                "Please update the configuration with your actual Supabase credentials."
            )
        return self


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build validated settings from the environment.

    Unset variables keep their defaults. Values that fail validation, and
    missing or placeholder credentials, are reported as ``ConfigError``.
    """
    environ = os.environ if environ is None else environ
    values = {
        field: environ[name].strip()
        for name, field in _ENV_FIELDS.items()
        if environ.get(name, "").strip()
    }
    try:
        settings = Settings(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
    return settings.check()
