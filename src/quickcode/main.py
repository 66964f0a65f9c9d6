import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.quickcode.api.v1.routes_analyze import router as analyze_router
from src.quickcode.api.v1.routes_sessions import router as sessions_router_v1
from src.quickcode.api.v1.routes_system import router as system_router_v1
from src.quickcode.config import settings
from src.quickcode.services.extraction.backends import ensure_provider_configured

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("main")

app = FastAPI(title="QuickCode Rx Coding Assistant API")


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook.

    Refuses to start when the selected model provider has no credential, so
    the misconfiguration is caught once instead of on every request.
    """

    ensure_provider_configured()
    logger.info("Extraction backend: %s", settings.extraction_backend.lower())


# CORS configuration: permissive by default for development. Tighten via
# CORS_ALLOW_ORIGINS in production deployments.
allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Basic liveness probe for the API root."""
    return {"status": "ok"}


# The analyze endpoint keeps the unversioned path the reviewer UI calls.
app.include_router(analyze_router, prefix="/api")
app.include_router(system_router_v1, prefix="/api/v1")
app.include_router(sessions_router_v1, prefix="/api/v1")
