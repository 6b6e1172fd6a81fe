# backend/accountsforge/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/accountsforge.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///accountsforge.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Role given to a profile created at first sign-in. No fallback: profile
    # creation raises ConfigurationError while this is unset.
    DEFAULT_PROFILE_ROLE = os.environ.get("DEFAULT_PROFILE_ROLE")

    # Percent. Seeds the default_commission_rate company setting.
    DEFAULT_COMMISSION_RATE = os.environ.get("DEFAULT_COMMISSION_RATE", "5.00")

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # Browser origins allowed to call the API (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )

    # bcrypt cost factor
    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))
