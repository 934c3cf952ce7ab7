from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load .env once here
load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


class Settings(BaseModel):
    """Application settings loaded from environment variables.

    Every field can also be passed explicitly, which is how tests build
    isolated apps.
    """

    app_env: str = Field(default_factory=lambda: _env("APP_ENV", "development"))
    database_url: str = Field(default_factory=lambda: _env("DATABASE_URL", "sqlite:///./chatvault.db"))
    session_secret: str = Field(default_factory=lambda: _env("SESSION_SECRET", "dev-session-secret-change-me"))
    session_backend: str = Field(default_factory=lambda: _env("SESSION_BACKEND", "sql"))
    port: int = Field(default_factory=lambda: int(_env("PORT", "3000")))
    default_locale: str = Field(default_factory=lambda: _env("DEFAULT_LOCALE", "ta"))
    cors_origins: List[str] = Field(
        default_factory=lambda: [o.strip() for o in _env("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
    )
    public_dir: Path = PACKAGE_DIR / "public"

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}

    @property
    def sqlalchemy_url(self) -> str:
        # Hosted Postgres providers still hand out the old scheme name
        if self.database_url.startswith("postgres://"):
            return "postgresql://" + self.database_url[len("postgres://"):]
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
