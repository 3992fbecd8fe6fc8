"""Theme listing API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from models.theme import ThemeListItem
from services.asset_store import ThemeAssetClient

from .dependencies import get_asset_client

router = APIRouter()


@router.get("", response_model=list[ThemeListItem])
async def list_themes(
    type: str | None = None,
    client: ThemeAssetClient = Depends(get_asset_client),
) -> list[ThemeListItem]:
    """Store themes; type=source keeps the live theme, type=target the others"""
    themes = [ThemeListItem.from_ref(theme) for theme in await client.list_themes()]
    if type:
        themes = [theme for theme in themes if theme.type == type]
    return themes
