# puphax/presentation/routers.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.concurrency import run_in_threadpool

from puphax.infra.api.security import require_admin_key, require_api_key
from puphax.presentation.schemas import AdvancedSearchRequest, ReloadResponse

from puphax.config import CatalogSettings
from puphax.container import get_coordinator, get_engine, get_settings, get_store, load_catalog
from puphax.application.catalog_store import CatalogStore
from puphax.application.fallback import FallbackCoordinator
from puphax.application.filter_options import get_filter_options
from puphax.application.query_engine import QueryEngine
from puphax.domain.errors import CatalogLoadError
from puphax.domain.models import Product
from puphax.domain.query import DrugSearchResponse, FilterOptions, FilterSpecification

logger = logging.getLogger("puphax.api")

# everything under /v1 requires X-Api-Key
router = APIRouter(prefix="/v1", dependencies=[Depends(require_api_key)])
# catalog maintenance takes the admin key instead
admin_router = APIRouter(prefix="/v1/catalog", dependencies=[Depends(require_admin_key)])

# ── SEARCH: simple positional form ────────────────────────────────
@router.get("/drugs/search", response_model=DrugSearchResponse)
async def search_drugs(
    term: Optional[str] = Query(None, max_length=100),
    manufacturer: Optional[str] = Query(None),
    atc_code: Optional[str] = Query(None, alias="atcCode", max_length=7),
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1, le=100),
    sort_by: str = Query("name", alias="sortBy", pattern="(?i)^(name|manufacturer|atc_?code)$"),
    sort_direction: str = Query("ASC", alias="sortDirection", pattern="(?i)^(asc|desc)$"),
    coordinator: FallbackCoordinator = Depends(get_coordinator),
    settings: CatalogSettings = Depends(get_settings),
):
    size = size or settings.default_page_size
    spec = FilterSpecification.basic(term, manufacturer, atc_code, page, size, sort_by, sort_direction)
    return await coordinator.search(spec)

# ── SEARCH: full filter specification ─────────────────────────────
@router.post("/drugs/search", response_model=DrugSearchResponse)
async def search_drugs_advanced(
    req: AdvancedSearchRequest,
    coordinator: FallbackCoordinator = Depends(get_coordinator),
):
    return await coordinator.search(req.to_spec())

@router.get("/drugs/filters", response_model=FilterOptions)
async def filter_options(store: CatalogStore = Depends(get_store)):
    return await run_in_threadpool(get_filter_options, store.current())

@router.get("/drugs/{product_id}", response_model=Product)
async def get_drug(product_id: str, engine: QueryEngine = Depends(get_engine)):
    product = engine.get(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product

# ── CATALOG RELOAD ────────────────────────────────────────────────
@admin_router.post("/reload", response_model=ReloadResponse)
async def reload_catalog():
    try:
        stats = await run_in_threadpool(load_catalog)
    except CatalogLoadError as e:
        logger.error("catalog reload failed: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return ReloadResponse(
        ok=True,
        products=stats.products_loaded,
        index_keys=stats.index_keys,
        skipped_malformed=stats.skipped_malformed,
        skipped_expired=stats.skipped_expired,
        skipped_invalid=stats.skipped_invalid,
        missing_tables=stats.missing_tables,
        duration_ms=stats.duration_ms,
    )
