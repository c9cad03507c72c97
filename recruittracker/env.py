import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DB_ENV = "RECRUIT_TRACKER_DB"
LOG_LEVEL_ENV = "RECRUIT_TRACKER_LOG_LEVEL"
LOG_DIR_ENV = "RECRUIT_TRACKER_LOG_DIR"

DEFAULT_DB_PATH = "data/recruiting.db"


@dataclass
class Settings:
    db_path: Path
    log_level: str = "INFO"
    log_dir: Path = Path("logs")


def load_env() -> None:
    """Load .env from the working directory if present.
    Values already set in the environment win.
    """
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def get_settings() -> Settings:
    """Read settings from the environment (call load_env first for .env support)."""
    level = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(f"{LOG_LEVEL_ENV} must be a logging level name, got {level!r}")
    return Settings(
        db_path=Path(os.getenv(DB_ENV, DEFAULT_DB_PATH)),
        log_level=level,
        log_dir=Path(os.getenv(LOG_DIR_ENV, "logs")),
    )
