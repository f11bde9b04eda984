from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from namemc.errors import InvalidArgument


@dataclass
class Settings:
    api_base_url: str
    profile_ttl_seconds: float
    server_ttl_seconds: float
    max_concurrency: Optional[int]
    max_entries: Optional[int]
    coalesce_fetches: bool


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidArgument(f"{name} must be a number, got {raw!r}") from exc


def _optional_int_env(name: str, default: Optional[int]) -> Optional[int]:
    """Unset keeps the default; 0 or 'none' means unbounded."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    if raw.strip().lower() == "none":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidArgument(f"{name} must be an integer, got {raw!r}") from exc
    return value if value > 0 else None


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def load_settings(project_root: Path) -> Settings:
    env_path = project_root / ".env"
    load_dotenv(env_path)

    return Settings(
        api_base_url=os.getenv("NAMEMC_API_BASE_URL", "https://api.namemc.com"),
        profile_ttl_seconds=_float_env("NAMEMC_PROFILE_TTL", 5 * 60),
        server_ttl_seconds=_float_env("NAMEMC_SERVER_TTL", 10 * 60),
        max_concurrency=_optional_int_env("NAMEMC_MAX_CONCURRENCY", None),
        max_entries=_optional_int_env("NAMEMC_MAX_ENTRIES", 100),
        coalesce_fetches=_bool_env("NAMEMC_COALESCE", False),
    )


def load_runtime_config(project_root: Path) -> dict:
    config_path = project_root / "config" / "config.yaml"
    if not config_path.exists():
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
