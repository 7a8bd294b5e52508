"""Configuration helpers for the Forge AI backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Mapping

from dotenv import load_dotenv

ENV_PREFIX = "FORGEAI_"

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

_TRUTHY = {"1", "true", "yes", "on"}

load_dotenv(override=False)


@dataclass(frozen=True)
class ForgeSettings:
    """Settings container for the gateway, the CRUD service and logging.

    The generation models are split per operation: deep analysis and
    composition use the larger model while discovery and chat use the
    faster one.
    """

    openai_api_key: str | None = None
    analysis_model: str = "gpt-4o"
    discovery_model: str = "gpt-4o-mini"
    compose_model: str = "gpt-4o"
    chat_model: str = "gpt-4o-mini"
    database_url: str | None = None
    storage_dir: str = ".forgeai"
    log_level: str = "INFO"
    json_logs: bool = True
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))

    @property
    def has_llm(self) -> bool:
        """True when an API key for the generation service is configured."""

        return bool(self.openai_api_key)

    @property
    def has_database(self) -> bool:
        """True when the CRUD service has a relational store to talk to."""

        return bool(self.database_url)


def _split_origins(raw: str | None) -> List[str]:
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _flag(raw: str | None, default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY


def settings_from_environ(environ: Mapping[str, str]) -> ForgeSettings:
    """Build settings from an arbitrary mapping (used by tests and the app)."""

    defaults = ForgeSettings()
    return ForgeSettings(
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        analysis_model=environ.get(f"{ENV_PREFIX}ANALYSIS_MODEL", defaults.analysis_model),
        discovery_model=environ.get(f"{ENV_PREFIX}DISCOVERY_MODEL", defaults.discovery_model),
        compose_model=environ.get(f"{ENV_PREFIX}COMPOSE_MODEL", defaults.compose_model),
        chat_model=environ.get(f"{ENV_PREFIX}CHAT_MODEL", defaults.chat_model),
        database_url=environ.get("DATABASE_URL") or None,
        storage_dir=environ.get(f"{ENV_PREFIX}STORAGE_DIR", defaults.storage_dir),
        log_level=environ.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
        json_logs=_flag(environ.get(f"{ENV_PREFIX}JSON_LOGS"), defaults.json_logs),
        allowed_origins=_split_origins(environ.get(f"{ENV_PREFIX}ALLOWED_ORIGINS")),
    )


@lru_cache(maxsize=1)
def get_settings() -> ForgeSettings:
    """Read environment variables and return cached settings."""

    return settings_from_environ(os.environ)
