"""
Asset Store Client - Read themes and theme assets from the store admin API

Every HTTP call is submitted to the shared RateLimiter, so callers can fan
out freely and still respect the store's per-credential request budget.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from models.theme import ThemeRef

from .errors import AssetStoreError, AuthFailure, ThrottledError
from .rate_limiter import RateLimiter

DEFAULT_API_VERSION = "2023-10"


def asset_body(payload: dict[str, Any]) -> Optional[str]:
    """Body of an asset response: text value, else base64 attachment, else absent"""
    asset = payload.get("asset") or {}
    value = asset.get("value")
    if value is not None:
        return value
    return asset.get("attachment")


def theme_id_from_gid(theme_id: str) -> str:
    """Accept both numeric ids and gid://shopify/OnlineStoreTheme/<id>"""
    return str(theme_id).rsplit("/", 1)[-1]


class ThemeAssetClient:
    """Client for the theme and asset endpoints of one store"""

    def __init__(
        self,
        shop: str,
        access_token: str,
        rate_limiter: RateLimiter,
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = 30,
    ):
        if not shop or not access_token:
            raise AuthFailure("Store domain and access token must both be configured")
        self.shop = shop
        self.access_token = access_token
        self.rate_limiter = rate_limiter
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: dict[str, Any], rate_limiter: RateLimiter) -> "ThemeAssetClient":
        """Build a client from config; environment credentials take precedence"""
        shop = os.environ.get("SHOPIFY_SHOP") or config.get("shop", "")
        token = os.environ.get("SHOPIFY_ACCESS_TOKEN") or config.get("accessToken", "")
        return cls(
            shop=shop,
            access_token=token,
            rate_limiter=rate_limiter,
            api_version=config.get("apiVersion", DEFAULT_API_VERSION),
            timeout_seconds=config.get("requestTimeout", 30),
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}"

    def _headers(self) -> dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    @asynccontextmanager
    async def _request(self, url: str, label: str):
        """GET with automatic session cleanup; non-200 raises AssetStoreError"""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=self._headers()) as response:
                if response.status == 429:
                    raise ThrottledError(await response.text(), label)
                if response.status in (401, 403):
                    error_text = await response.text()
                    raise AuthFailure(f"Store rejected credentials (HTTP {response.status}): {error_text[:200]}")
                if response.status != 200:
                    error_text = await response.text()
                    raise AssetStoreError(response.status, error_text, label)
                yield response

    async def _get_json(self, url: str, label: str) -> dict[str, Any]:
        async def _execute_request():
            async with self._request(url, label) as response:
                return await response.json()

        return await self.rate_limiter.enqueue(_execute_request, label)

    async def list_themes(self) -> list[ThemeRef]:
        """All themes of the store"""
        data = await self._get_json(f"{self.base_url}/themes.json", "themes")
        return [
            ThemeRef(
                id=str(theme["id"]),
                name=theme.get("name", ""),
                role=theme.get("role", ""),
                created_at=theme.get("created_at"),
            )
            for theme in data.get("themes", [])
        ]

    async def list_assets(self, theme_id: str) -> list[dict[str, Any]]:
        """Asset metadata of one theme, in store order"""
        theme_id = theme_id_from_gid(theme_id)
        data = await self._get_json(f"{self.base_url}/themes/{theme_id}/assets.json", f"theme {theme_id} listing")
        return data.get("assets", [])

    async def get_asset(self, theme_id: str, key: str) -> Optional[str]:
        """Body of one asset, or None when the theme has no such asset"""
        theme_id = theme_id_from_gid(theme_id)
        url = f"{self.base_url}/themes/{theme_id}/assets.json?asset[key]={quote(key, safe='')}"
        try:
            data = await self._get_json(url, f"{key} (theme {theme_id})")
        except AssetStoreError as e:
            if e.status == 404:
                return None
            raise
        return asset_body(data)
