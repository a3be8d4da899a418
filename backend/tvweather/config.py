"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from .protocol.constants import DEFAULT_TIMEOUT, MAX_TIMEOUT

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/tvweather/tvweather.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Trafikverket open data API
    api_key: str = ""
    api_url: str = "https://api.trafikinfo.trafikverket.se/v2/data.json"
    request_timeout: float = DEFAULT_TIMEOUT

    # Polling (minutes, user-editable per device afterwards)
    refresh_interval_min: float = 5

    # Pairing
    pairing_radius: str = "20000m"

    # Host location (used for nearby station search)
    latitude: float = 0.0
    longitude: float = 0.0

    # Display language for translated capability values
    language: str = "en"

    # Database
    db_path: str = "tvweather.db"

    @field_validator("request_timeout")
    @classmethod
    def _clamp_timeout(cls, value: float) -> float:
        """Requests are aborted after 5-10 seconds."""
        return min(max(value, DEFAULT_TIMEOUT), MAX_TIMEOUT)

    @model_validator(mode="after")
    def _resolve_db_path(self) -> "Settings":
        """Make db_path absolute: relative to /var/lib/tvweather if installed, else project root."""
        p = Path(self.db_path)
        if not p.is_absolute():
            if _ENV_FILE == _SYSTEM_CONF:
                self.db_path = str(Path("/var/lib/tvweather") / p)
            else:
                self.db_path = str(_PROJECT_ROOT / p)
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "TVW_", "env_file": str(_ENV_FILE)}


settings = Settings()
