"""Environment-driven configuration for the content stack."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


@dataclass(frozen=True)
class CosmosConfig:
    endpoint: str = field(default_factory=lambda: _env("COSMOS_ENDPOINT"))
    key: str = field(default_factory=lambda: _env("COSMOS_KEY"))
    database: str = field(default_factory=lambda: _env("COSMOS_DATABASE", "content-stack"))


@dataclass(frozen=True)
class VersioningConfig:
    """Tuning for version numbering and batch operations."""

    retry_budget: int = field(default_factory=lambda: int(_env("VERSION_RETRY_BUDGET", "5")))
    retry_backoff_seconds: float = field(
        default_factory=lambda: float(_env("VERSION_RETRY_BACKOFF_SECONDS", "0.05"))
    )
    batch_concurrency: int = field(default_factory=lambda: int(_env("BATCH_CONCURRENCY", "8")))
    default_branch: str = field(default_factory=lambda: _env("DEFAULT_BRANCH", "Basis"))


@dataclass(frozen=True)
class AppConfig:
    env: str = field(default_factory=lambda: _env("APP_ENV", "development"))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@dataclass(frozen=True)
class Settings:
    cosmos: CosmosConfig = field(default_factory=CosmosConfig)
    versioning: VersioningConfig = field(default_factory=VersioningConfig)
    app: AppConfig = field(default_factory=AppConfig)


def load_settings() -> Settings:
    """Load a local .env file (if any) and build settings from the environment."""
    load_dotenv()
    return Settings()
