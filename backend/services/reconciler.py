"""
Asset Reconciler - Work out which asset keys two themes have in common
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Protocol

from .errors import AuthFailure, ListingFailure

DEFAULT_EXTENSIONS = (".js", ".json", ".liquid")


class AssetLister(Protocol):
    async def list_assets(self, theme_id: str) -> list[dict[str, Any]]: ...


def filter_by_extension(keys: Iterable[str], allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[str]:
    """Keep keys whose suffix is in the allow-list, preserving order"""
    suffixes = tuple(allowed_extensions)
    return [key for key in keys if key.endswith(suffixes)]


def intersect_listings(source_assets: list[dict[str, Any]], target_assets: list[dict[str, Any]]) -> list[str]:
    """Keys present in both listings, in source listing order"""
    source_map = {asset["key"]: asset for asset in source_assets}
    target_map = {asset["key"]: asset for asset in target_assets}
    return [key for key in source_map if key in target_map]


class AssetReconciler:
    """List both themes and intersect their asset keys"""

    def __init__(self, client: AssetLister):
        self.client = client

    async def _list(self, theme_id: str) -> list[dict[str, Any]]:
        try:
            return await self.client.list_assets(theme_id)
        except AuthFailure:
            raise
        except Exception as e:
            print(f"[Reconciler] Listing failed for theme {theme_id}: {e}")
            raise ListingFailure(theme_id, e) from e

    async def list_intersection(self, source_theme: str, target_theme: str) -> list[str]:
        """Keys present in both themes; fails as a whole if either listing fails"""
        listings = await asyncio.gather(
            self._list(source_theme),
            self._list(target_theme),
            return_exceptions=True,
        )
        for listing in listings:
            if isinstance(listing, BaseException):
                raise listing
        source_assets, target_assets = listings
        return intersect_listings(source_assets, target_assets)

    async def list_intersection_filtered(
        self,
        source_theme: str,
        target_theme: str,
        allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> list[str]:
        """Intersection restricted to the extension allow-list"""
        keys = await self.list_intersection(source_theme, target_theme)
        return filter_by_extension(keys, allowed_extensions)
