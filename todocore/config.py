from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: Path
    timezone: str
    log_level: str


def load_settings() -> Settings:
    tz = os.getenv("TZ", "UTC").strip() or "UTC"
    db_raw = os.getenv("DB_PATH", "data/todocore.db").strip()
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    if not db_raw:
        raise RuntimeError("DB_PATH is empty in .env")

    return Settings(
        db_path=Path(db_raw),
        timezone=tz,
        log_level=log_level,
    )
