"""
Theme Diff Backend - FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routers import compare, config, history, scan, themes
from services.comparison_store import open_store
from services.config_manager import ConfigManager
from services.errors import (
    AuthFailure,
    ComparisonNotFound,
    ListingFailure,
    ThemeDiffError,
    ThrottleExhausted,
)
from services.rate_limiter import RateLimiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    print("[Backend] Starting Theme Diff Backend...")
    config_manager = ConfigManager.get_instance()
    config = config_manager.get_config()
    print(f"[Backend] ConfigManager initialized ({config_manager.config_dir})")

    # One limiter for the whole process: the store's budget is per credential
    app.state.rate_limiter = RateLimiter.from_config(config)
    print(f"[Backend] RateLimiter initialized ({app.state.rate_limiter.interval:.2f}s between requests)")

    app.state.comparison_store = open_store(config, config_manager.config_dir)
    print(f"[Backend] ComparisonStore initialized ({app.state.comparison_store.db_path})")

    yield
    await app.state.rate_limiter.close()
    print("[Backend] Shutting down Theme Diff Backend...")


app = FastAPI(
    title="Theme Diff Backend",
    description="Compare two storefront themes file by file",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for the embedded admin UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ERROR_STATUS = {
    AuthFailure: 401,
    ComparisonNotFound: 404,
    ListingFailure: 502,
    ThrottleExhausted: 503,
}


@app.exception_handler(ThemeDiffError)
async def theme_diff_error_handler(request: Request, exc: ThemeDiffError):
    """Fatal errors become a single JSON error response"""
    status = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 502)
    print(f"[Backend] {request.url.path} failed ({status}): {exc}")
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.exception_handler(aiohttp.ClientError)
async def network_error_handler(request: Request, exc: aiohttp.ClientError):
    print(f"[Backend] {request.url.path} network error: {exc}")
    return JSONResponse(status_code=502, content={"error": f"Network error: {exc}"})


# Include routers
app.include_router(scan.router, prefix="/api/scan", tags=["scan"])
app.include_router(compare.router, prefix="/api/compare", tags=["compare"])
app.include_router(history.router, prefix="/api/history", tags=["history"])
app.include_router(themes.router, prefix="/api/themes", tags=["themes"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "theme-diff-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get_config().get("server", {})
    uvicorn.run(app, host=server.get("host", "0.0.0.0"), port=server.get("port", 8000))
