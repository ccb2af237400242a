# main.py
from dotenv import load_dotenv
load_dotenv()

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from puphax.presentation.routers import admin_router, router as v1_router
from puphax.presentation.health import router as health_router
from puphax.container import load_catalog
from puphax.domain.errors import CatalogLoadError

# --- logging config must come first ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
app_logger = logging.getLogger("puphax.request")

app = FastAPI(
    title="PUPHAX Drug Catalog",
    version=os.getenv("APP_VERSION", "0.1.0"),
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    app_logger.info("Incoming %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        app_logger.info("Completed %s %s -> %s", request.method, request.url.path, response.status_code)
        return response
    except Exception:
        app_logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        raise

# ─────────────────────────────────────────────────────────────
# CORS (CORS_ALLOW_ORIGINS="https://foo.com,https://bar.com")
# ─────────────────────────────────────────────────────────────
raw_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["health"])
app.include_router(v1_router, tags=["api"])
app.include_router(admin_router, tags=["admin"])

@app.get("/")
async def root():
    return {
        "name": "PUPHAX Drug Catalog",
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "ok": True,
    }

# ─────────────────────────────────────────────────────────────
# Startup: build the offline snapshot so the fallback path is ready
# ─────────────────────────────────────────────────────────────
@app.on_event("startup")
async def warmup():
    if os.getenv("PUPHAX_LOAD_ON_STARTUP", "1") != "1":
        return
    try:
        load_catalog()
    except CatalogLoadError:
        # stay up with an empty snapshot; offline answers will be empty
        app_logger.exception("offline catalog could not be loaded")
