"""
config.py
Settings read from the environment (a local .env file is loaded first).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    APP_NAME: str = os.getenv("GYM_NAME", "Gym Membership Register")
    DB_FILE: Path = Path(os.getenv("GYM_DB_FILE", str(Path(__file__).with_name("gym.db"))))
    CURRENCY: str = os.getenv("GYM_CURRENCY", "₹")
    DEFAULT_ADMIN_PASSWORD: str = os.getenv("GYM_DEFAULT_ADMIN_PASSWORD", "admin123")
    LOG_LEVEL: str = os.getenv("GYM_LOG_LEVEL", "INFO")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
