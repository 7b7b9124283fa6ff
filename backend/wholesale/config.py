# backend/wholesale/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> set[str]:
    return {part.strip() for part in value.split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/wholesale.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///wholesale.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = _split_csv(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002",
        )
    )

    # Insights gateway (LLM adapter). No key -> insights endpoints answer 503.
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    INSIGHTS_MODEL = os.environ.get("INSIGHTS_MODEL", "gpt-4o-mini")
    INSIGHTS_TIMEOUT_SECONDS = float(os.environ.get("INSIGHTS_TIMEOUT_SECONDS", "60"))
    INSIGHTS_DEFAULT_WINDOW_DAYS = int(os.environ.get("INSIGHTS_DEFAULT_WINDOW_DAYS", "60"))
