# puphax/container.py
from functools import lru_cache

from puphax.config import CatalogSettings
from puphax.domain.models import LoadStats
from puphax.infra.cache.redis_cache import RedisCache
from puphax.infra.catalog.loader import CatalogLoader
from puphax.infra.catalog.tables import load_table_sources
from puphax.infra.api.upstream_adapter import HttpUpstreamAdapter

from puphax.application.catalog_store import CatalogStore
from puphax.application.query_engine import QueryEngine
from puphax.application.fallback import FallbackCoordinator, UpstreamAvailability

@lru_cache
def _settings() -> CatalogSettings: return CatalogSettings.from_env()

@lru_cache
def _store() -> CatalogStore: return CatalogStore()

@lru_cache
def _engine() -> QueryEngine:
    return QueryEngine(_store(), max_page_size=_settings().max_page_size)

@lru_cache
def _availability() -> UpstreamAvailability:
    s = _settings()
    return UpstreamAvailability(available=s.upstream_enabled and bool(s.upstream_url))

@lru_cache
def _upstream() -> HttpUpstreamAdapter | None:
    s = _settings()
    return HttpUpstreamAdapter(s.upstream_url, timeout=s.upstream_timeout) if s.upstream_url else None

@lru_cache
def _cache() -> RedisCache | None:
    s = _settings()
    return RedisCache.from_url(s.redis_url) if s.cache_enabled else None

@lru_cache
def _coordinator() -> FallbackCoordinator:
    return FallbackCoordinator(
        engine=_engine(),
        upstream=_upstream(),
        availability=_availability(),
        cache=_cache(),
        cache_ttl=_settings().cache_ttl,
    )

def build_loader() -> CatalogLoader:
    s = _settings()
    return CatalogLoader(load_table_sources(s.data_dir, s.tables_cfg), retention_years=s.retention_years)

def load_catalog() -> LoadStats:
    """(Re)load the snapshot from the configured tables. Raises CatalogLoadError."""
    return _store().reload(build_loader())

def get_settings(): return _settings()
def get_store(): return _store()
def get_engine(): return _engine()
def get_availability(): return _availability()
def get_cache(): return _cache()
def get_coordinator(): return _coordinator()
