"""Shared FastAPI dependencies"""

from __future__ import annotations

import os
from typing import Any, Callable

from fastapi import Depends, Request

from services.asset_store import ThemeAssetClient
from services.comparison_store import ComparisonStore
from services.config_manager import ConfigManager
from services.diff_engine import DiffEngine
from services.errors import AuthFailure
from services.orchestrator import ScanOrchestrator, ScanSettings
from services.rate_limiter import RateLimiter

diff_engine = DiffEngine()


def get_config() -> dict[str, Any]:
    return ConfigManager.get_instance().get_config()


def get_rate_limiter(request: Request) -> RateLimiter:
    """The process-wide limiter created at startup"""
    return request.app.state.rate_limiter


def get_comparison_store(request: Request) -> ComparisonStore:
    return request.app.state.comparison_store


def get_diff_engine() -> DiffEngine:
    return diff_engine


def get_client_factory(
    request: Request,
    config: dict[str, Any] = Depends(get_config),
) -> Callable[[], ThemeAssetClient]:
    """Deferred client construction, for routes that only sometimes need the store"""

    def _factory() -> ThemeAssetClient:
        return ThemeAssetClient.from_config(config, get_rate_limiter(request))

    return _factory


def get_asset_client(factory: Callable[[], ThemeAssetClient] = Depends(get_client_factory)) -> ThemeAssetClient:
    """Raises AuthFailure when no credentials are configured"""
    return factory()


def get_orchestrator(
    client: ThemeAssetClient = Depends(get_asset_client),
    config: dict[str, Any] = Depends(get_config),
    engine: DiffEngine = Depends(get_diff_engine),
) -> ScanOrchestrator:
    return ScanOrchestrator(client, engine, ScanSettings.from_config(config))


def get_shop(config: dict[str, Any] = Depends(get_config)) -> str:
    shop = os.environ.get("SHOPIFY_SHOP") or config.get("shop", "")
    if not shop:
        raise AuthFailure("No store configured")
    return shop
