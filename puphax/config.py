# puphax/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default) == "1"


@dataclass(frozen=True)
class CatalogSettings:
    data_dir: str = "data/puphax"
    tables_cfg: str = "config/tables.yaml"
    retention_years: int = 2
    default_page_size: int = 20
    max_page_size: int = 100

    upstream_url: str = ""
    upstream_timeout: float = 10.0
    upstream_enabled: bool = True

    cache_enabled: bool = False
    cache_ttl: int = 3600
    redis_url: str = "redis://localhost:6379/0"

    @classmethod
    def from_env(cls) -> "CatalogSettings":
        return cls(
            data_dir=os.getenv("PUPHAX_DATA_DIR", "data/puphax"),
            tables_cfg=os.getenv("PUPHAX_TABLES_CFG", "config/tables.yaml"),
            retention_years=int(os.getenv("PUPHAX_RETENTION_YEARS", "2")),
            default_page_size=int(os.getenv("PUPHAX_DEFAULT_PAGE_SIZE", "20")),
            max_page_size=int(os.getenv("PUPHAX_MAX_PAGE_SIZE", "100")),
            upstream_url=os.getenv("PUPHAX_UPSTREAM_URL", ""),
            upstream_timeout=float(os.getenv("PUPHAX_UPSTREAM_TIMEOUT", "10")),
            upstream_enabled=_flag("PUPHAX_UPSTREAM_ENABLED", "1"),
            cache_enabled=_flag("PUPHAX_CACHE_ENABLED", "0"),
            cache_ttl=int(os.getenv("PUPHAX_CACHE_TTL", "3600")),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        )
