"""Configuration API endpoints"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from services.config_manager import ConfigManager
from services.errors import ThemeDiffError
from services.rate_limiter import RateLimiter

from .dependencies import get_client_factory, get_rate_limiter

router = APIRouter()


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    shop: str | None = None
    accessToken: str | None = None
    apiVersion: str | None = None
    requestTimeout: float | None = None
    rateLimit: dict | None = None
    scan: dict | None = None
    database: dict | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    shop: str
    accessToken: str
    apiVersion: str
    requestTimeout: float
    rateLimit: dict
    scan: dict
    database: dict


class ValidateResponse(BaseModel):
    """Validation response"""

    valid: bool
    message: str
    shop: str


def mask_key(key: str) -> str:
    """Keep the first and last four characters of a secret"""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration"""
    config = ConfigManager.get_instance().get_config()

    return ConfigResponse(
        shop=config.get("shop", ""),
        accessToken=mask_key(config.get("accessToken", "")),
        apiVersion=config.get("apiVersion", ""),
        requestTimeout=config.get("requestTimeout", 30),
        rateLimit=config.get("rateLimit", {}),
        scan=config.get("scan", {}),
        database=config.get("database", {}),
    )


@router.put("")
async def update_config(
    request: ConfigUpdateRequest,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    """Update configuration"""
    config_manager = ConfigManager.get_instance()

    # Update only provided fields
    config_manager.save_config(request.model_dump(exclude_none=True))

    if request.rateLimit is not None:
        rate_limiter.configure(config_manager.get_config())

    return {"status": "success", "message": "Configuration updated"}


@router.post("/validate", response_model=ValidateResponse)
async def validate_config(client_factory=Depends(get_client_factory)) -> ValidateResponse:
    """Validate the stored credentials by listing the store's themes"""
    config = ConfigManager.get_instance().get_config()
    shop = config.get("shop", "")

    try:
        themes = await client_factory().list_themes()
    except ThemeDiffError as e:
        return ValidateResponse(valid=False, message=f"Connection failed: {e}", shop=shop)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        return ValidateResponse(valid=False, message=f"Network error: {e}", shop=shop)

    return ValidateResponse(
        valid=True,
        message=f"Connected to {shop}, {len(themes)} themes found",
        shop=shop,
    )
