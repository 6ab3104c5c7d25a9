from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_int_first(names: tuple[str, ...], default: int) -> int:
    for name in names:
        v = os.getenv(name)
        if v is None or v == "":
            continue
        try:
            return int(v)
        except ValueError:
            continue
    return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return list(default)
    return [x.strip() for x in v.split(",") if x.strip()]


@dataclass
class Settings:
    # Storage
    data_path: str = "data/bookmarks.json"

    # Server
    host: str = "127.0.0.1"
    port: int = 5174
    static_dir: str = ""  # empty => packaged helio/web
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Metadata fetching
    fetch_timeout_s: int = 6
    fetch_user_agent: str = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) helio/1.0"
    fetch_max_bytes: int = 1_000_000

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @property
    def data_file(self) -> Path:
        return Path(self.data_path).expanduser()

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.data_path = _env_str("HELIO_DATA_PATH", s.data_path)

        s.host = _env_str("HELIO_HOST", s.host)
        # Compat: BM_PORT is the older name; HELIO_PORT wins when both are set.
        s.port = _env_int_first(("HELIO_PORT", "BM_PORT"), s.port)
        s.static_dir = _env_str("HELIO_STATIC_DIR", s.static_dir)
        s.cors_origins = _env_list("HELIO_CORS_ORIGINS", s.cors_origins)

        s.fetch_timeout_s = _env_int("HELIO_FETCH_TIMEOUT_S", s.fetch_timeout_s)
        s.fetch_user_agent = _env_str("HELIO_FETCH_UA", s.fetch_user_agent)
        s.fetch_max_bytes = _env_int("HELIO_FETCH_MAX_BYTES", s.fetch_max_bytes)

        s.log_level = _env_str("HELIO_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("HELIO_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k) and k != "data_file":
                setattr(s, k, v)
        return s


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
