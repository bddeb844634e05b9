"""Settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

ENV_PREFIX = "WORKBOARD"

DEFAULT_DATA_DIR = Path("~/.local/share/workboard")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str, default: str = "") -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and v.strip() != "":
            return v.strip()
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    data_dir: Path = DEFAULT_DATA_DIR
    poll_interval: float = 5.0
    log_level: str = "INFO"

    @property
    def is_configured(self) -> bool:
        """True when a remote store has been set up; says nothing about reachability."""
        return bool(self.supabase_url and self.supabase_key)

    @staticmethod
    def from_env() -> Settings:
        return Settings(
            supabase_url=_first_env(_k("SUPABASE_URL"), "SUPABASE_URL"),
            supabase_key=_first_env(_k("SUPABASE_KEY"), "SUPABASE_ANON_KEY"),
            data_dir=Path(_first_env(_k("DATA_DIR"), default=str(DEFAULT_DATA_DIR))).expanduser(),
            poll_interval=_env_float(_k("POLL_INTERVAL"), 5.0),
            log_level=_first_env(_k("LOG_LEVEL"), default="INFO").upper(),
        )

    def without_remote(self) -> Settings:
        return replace(self, supabase_url="", supabase_key="")
