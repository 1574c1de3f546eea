"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """doselog server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Server
    # Loopback by default: there is no auth layer in front of the tools.
    doselog_host: str = "127.0.0.1"
    doselog_port: int = 8003
    doselog_log_level: str = "info"
    doselog_allow_insecure_bind: bool = False

    # Store (fs-over-http)
    doses_url: str = "http://localhost:6010/media/doses.json"
    # First match wins, so an explicit STORE_TOKEN beats the fs-over-http names.
    store_token: str = Field(
        default="",
        validation_alias=AliasChoices("store_token", "foh_token", "foh_server_auth", "token"),
    )
    http_timeout: float = 10.0

    # Dose defaults
    default_route: str = "Oral"
    default_window: int = 5

    # Unit table override (YAML); empty uses the bundled table
    units_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
