from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv


DEFAULT_API_URL = "https://terminus.pantheon.io/api"


def _default_env_file() -> str:
    # .env next to the working directory, so a checkout can be run as-is.
    return str(Path.cwd() / ".env")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    machine_tokens: Tuple[str, ...]
    environment: str
    port: int
    refresh_interval_minutes: int
    site_limit: int
    org_id: str
    debug: bool

    metrics_tick_seconds: float
    fetch_max_workers: int
    warm_up: bool

    api_url: str
    request_timeout: float
    fixtures_dir: str


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("EXPORTER_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    # Tokens are separated by whitespace, one per Pantheon account.
    machine_tokens = tuple(os.getenv("PANTHEON_MACHINE_TOKENS", "").split())

    return Settings(
        machine_tokens=machine_tokens,
        environment=os.getenv("PANTHEON_ENV", "live"),
        port=int(os.getenv("EXPORTER_PORT", "8080")),
        refresh_interval_minutes=int(os.getenv("REFRESH_INTERVAL_MINUTES", "60")),
        site_limit=int(os.getenv("SITE_LIMIT", "0")),
        org_id=os.getenv("PANTHEON_ORG_ID", ""),
        debug=_env_flag("EXPORTER_DEBUG", "false"),
        metrics_tick_seconds=float(os.getenv("METRICS_TICK_SECONDS", "60")),
        fetch_max_workers=int(os.getenv("FETCH_MAX_WORKERS", "8")),
        warm_up=_env_flag("EXPORTER_WARM_UP", "true"),
        api_url=os.getenv("PANTHEON_API_URL", DEFAULT_API_URL),
        request_timeout=float(os.getenv("PANTHEON_REQUEST_TIMEOUT", "30")),
        fixtures_dir=os.getenv("EXPORTER_FIXTURES_DIR", ""),
    )
