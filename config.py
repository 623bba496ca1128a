import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        session_secret: str,
        session_max_age_hours: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.session_secret = session_secret
        self.session_max_age_hours = session_max_age_hours
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("PFM_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("PFM_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("PFM_TIMEZONE", "UTC")
    session_secret = os.getenv(
        "PFM_SESSION_SECRET",
        "3f1c9a0e7d2b4c58a6e1f0d9b8c7a6e5d4c3b2a1f0e9d8c7b6a5f4e3d2c1b0a9",
    )
    session_max_age_hours = int(os.getenv("PFM_SESSION_MAX_AGE_HOURS", "24"))
    log_level = os.getenv("PFM_LOG_LEVEL", "INFO")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        session_secret=session_secret,
        session_max_age_hours=session_max_age_hours,
        log_level=log_level,
    )
