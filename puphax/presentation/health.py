# puphax/presentation/health.py
from fastapi import APIRouter, Depends
import os
from puphax.container import get_availability, get_cache, get_store

router = APIRouter()

@router.get("/healthz")
async def healthz():
    return {"ok": True}

@router.get("/readyz")
async def readyz(store = Depends(get_store), availability = Depends(get_availability), cache = Depends(get_cache)):
    snap = store.current()
    checks = {
        "catalog_loaded": store.loaded,
        "products": len(snap),
        "loaded_at": snap.stats.loaded_at.isoformat() if snap.stats.loaded_at else None,
        "upstream_available": availability.is_available(),
    }
    ok = store.loaded
    # Redis (optional)
    if cache is not None:
        try:
            checks["redis"] = bool(await cache.ping())
        except Exception as e:
            checks["redis"] = False; checks["redis_error"] = str(e)
    checks["version"] = os.getenv("APP_VERSION", "0.1.0")
    return {"ok": ok, **checks}
