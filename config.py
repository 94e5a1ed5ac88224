# config.py

"""Settings for the table-ordering service.

``config.json`` next to this file holds the deployment defaults; any
environment variable named after a setting (case-insensitive) wins over it.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayKind(str, Enum):
    """Select the payment gateway implementation.

    ``STUB`` approves at random using the configured approval rates and never
    leaves the process. ``HTTP`` forwards authorisations and refunds to
    ``gateway_url``.
    """

    STUB = "stub"
    HTTP = "http"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./dev_tableorder.db"
    auto_create_schema: bool = True
    secret_key: str = "change-me"
    access_token_expire_minutes: int = Field(15, ge=1)
    refresh_token_expire_minutes: int = Field(60 * 24 * 7, ge=1)
    payment_gateway: GatewayKind = GatewayKind.STUB
    gateway_url: str | None = None
    gateway_timeout_secs: float = Field(5.0, gt=0)
    gateway_approval_rate: float = Field(0.95, ge=0, le=1)
    gateway_refund_rate: float = Field(0.98, ge=0, le=1)
    # 0 turns the in-process sweeper off
    cart_sweep_interval_secs: int = Field(600, ge=0)
    qr_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    error_dsn: str | None = None
    env: str = "dev"


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    return json.loads(path.read_text())


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, environment first, then ``config.json``.

    Cached; call ``get_settings.cache_clear()`` after changing the
    environment.
    """

    data = _read_json(Path(__file__).with_name("config.json"))
    data.update(
        {
            k.lower(): v
            for k, v in os.environ.items()
            if k.lower() in Settings.model_fields
        }
    )
    return Settings(**data)
