# backend/payportal/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Token signing key; falls back to SECRET_KEY when not set separately
    TOKEN_SECRET_KEY = os.environ.get("TOKEN_SECRET_KEY") or SECRET_KEY
    TOKEN_ALGORITHM = os.environ.get("TOKEN_ALGORITHM", "HS256")
    TOKEN_TTL_DAYS = _env_int("TOKEN_TTL_DAYS", 30)

    # SQLite DB stored in backend/instance/payportal.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///payportal.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Brute-force protection on login, keyed by client address + email
    LOGIN_MAX_FAILED_ATTEMPTS = _env_int("LOGIN_MAX_FAILED_ATTEMPTS", 5)
    LOGIN_LOCKOUT_WINDOW_MINUTES = _env_int("LOGIN_LOCKOUT_WINDOW_MINUTES", 15)

    # Transaction creation limit per customer
    TRANSACTION_CREATE_LIMIT = _env_int("TRANSACTION_CREATE_LIMIT", 10)
    TRANSACTION_CREATE_WINDOW_MINUTES = _env_int("TRANSACTION_CREATE_WINDOW_MINUTES", 60)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]

    # Include exception text in 500 responses (never in production)
    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS")


class DevelopmentConfig(Config):
    DEBUG = True
    EXPOSE_ERROR_DETAILS = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret-key"
    TOKEN_SECRET_KEY = "testing-token-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BCRYPT_ROUNDS = 4
    CORS_ALLOWED_ORIGINS = ["http://localhost:5173"]
