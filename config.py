"""
config.py
Settings read from environment variables (database, photos, owner account, sessions).

Set environment variables before importing this module; values are read once
when ``settings`` is created.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_OWNER_PASSWORD = "admin123"


@dataclass(frozen=True)
class OwnerCredentials:
    """Credential record used to seed the owner account at start-up."""

    username: str
    password: str

    @property
    def is_default(self) -> bool:
        return self.password == DEFAULT_OWNER_PASSWORD


@dataclass
class Settings:
    db_path: Path = field(default_factory=lambda: Path(os.getenv("GYM_DB_PATH", str(BASE_DIR / "gym.db"))))
    photo_dir: Path = field(default_factory=lambda: Path(os.getenv("GYM_PHOTO_DIR", str(BASE_DIR / "uploads"))))

    owner_username: str = os.getenv("GYM_OWNER_USERNAME", "admin")
    owner_password: str = os.getenv("GYM_OWNER_PASSWORD", DEFAULT_OWNER_PASSWORD)

    secret_key: str = os.getenv("GYM_SECRET_KEY", "dev-secret-change-me")
    session_max_age: int = int(os.getenv("GYM_SESSION_MAX_AGE", str(60 * 60 * 24)))

    max_photo_bytes: int = int(os.getenv("GYM_MAX_PHOTO_BYTES", str(5 * 1024 * 1024)))
    default_duration_months: int = int(os.getenv("GYM_DEFAULT_DURATION_MONTHS", "1"))
    expiring_days: int = int(os.getenv("GYM_EXPIRING_DAYS", "7"))

    # 12 in production; tests lower it to keep hashing fast
    bcrypt_rounds: int = int(os.getenv("GYM_BCRYPT_ROUNDS", "12"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str | None = os.getenv("GYM_LOG_FILE") or None

    def owner_credentials(self) -> OwnerCredentials:
        return OwnerCredentials(username=self.owner_username, password=self.owner_password)


settings = Settings()
