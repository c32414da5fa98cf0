from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    log_level: str = "INFO"
    log_dir: str = "logs"
    cache_dir: str = ".cache"
    cache_key: str = "@task-cache"
    connectivity_poll_seconds: float = 5.0
    user_id: str | None = None


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip() or None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        cache_dir=os.getenv("CACHE_DIR", ".cache"),
        cache_key=os.getenv("CACHE_KEY", "@task-cache"),
        connectivity_poll_seconds=float(os.getenv("CONNECTIVITY_POLL_SECONDS", "5")),
        user_id=os.getenv("TASKSYNC_USER_ID", "").strip() or None,
    )


load_env()

SETTINGS = load_settings()
