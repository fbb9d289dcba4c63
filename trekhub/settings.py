"""
Application settings. Read from environment (TREKHUB_ prefix) and .env.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Default DB path: project root / trekhub.db
_DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent / "trekhub.db"


class Settings(BaseSettings):
    """Booking export service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TREKHUB_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    app_name: str = "Trek Hub India Booking Export API"
    db_path: Path = _DEFAULT_DB_PATH

    # Export naming
    export_file_prefix: str = "trek-hub-india"
    booking_number_prefix: str = "NMD"
    exported_by: str = "Trek Hub India Admin"

    # Dates in exports are shown in Indian format and local time
    display_timezone: str = "Asia/Kolkata"

    log_level: str = "INFO"
    log_json: bool = False

    cors_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
