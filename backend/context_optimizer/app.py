"""FastAPI application setup for Context Optimizer."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from context_optimizer.api.dependencies import (
    get_app_settings,
    get_compressor,
    get_indexer,
    get_packager,
    get_watcher,
    shutdown as shutdown_services,
)
from context_optimizer.api.routes_admin import router as admin_router
from context_optimizer.api.routes_index import router as index_router
from context_optimizer.api.routes_package import router as package_router
from context_optimizer.core.logging import configure_logging, get_logger
from context_optimizer.errors import ContextOptimizerError, FileAccessError

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Context Optimizer",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(index_router, prefix="/index", tags=["index"])
app.include_router(package_router, prefix="", tags=["packages"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(FileAccessError)
async def file_access_error_handler(request: Request, exc: FileAccessError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ContextOptimizerError)
async def optimizer_error_handler(request: Request, exc: ContextOptimizerError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.on_event("startup")
async def startup() -> None:
    """Build the services and bring the index up to date."""
    settings = get_app_settings()
    stats = get_indexer().initialize()
    logger.info("Startup indexing: %s indexed, %s skipped", stats.indexed, stats.skipped)
    get_compressor()
    get_packager()
    if settings.watch_enabled:
        get_watcher().start()


@app.on_event("shutdown")
async def shutdown() -> None:
    shutdown_services()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
