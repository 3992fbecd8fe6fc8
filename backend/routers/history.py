"""Comparison history API endpoints"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from models.history import ComparisonCreateRequest, ComparisonRecord
from services.comparison_store import ComparisonStore

from .dependencies import get_comparison_store, get_shop

router = APIRouter()

# Sync handlers: the store does blocking sqlite I/O and must run in the threadpool


@router.get("", response_model=list[ComparisonRecord])
def list_comparisons(
    shop: str = Depends(get_shop),
    store: ComparisonStore = Depends(get_comparison_store),
) -> list[ComparisonRecord]:
    """Saved comparisons for the current shop, newest first"""
    return store.list(shop)


@router.post("", response_model=ComparisonRecord)
def create_comparison(
    request: ComparisonCreateRequest,
    shop: str = Depends(get_shop),
    store: ComparisonStore = Depends(get_comparison_store),
) -> ComparisonRecord:
    """Save a finished comparison"""
    return store.create(shop, request)


@router.get("/{comparison_id}", response_model=ComparisonRecord)
def get_comparison(
    comparison_id: str,
    store: ComparisonStore = Depends(get_comparison_store),
) -> ComparisonRecord:
    """One saved comparison with its per-file bodies"""
    return store.get(comparison_id)


@router.delete("")
def delete_comparison(
    id: str | None = None,
    store: ComparisonStore = Depends(get_comparison_store),
) -> dict[str, Any]:
    """Delete a saved comparison and its per-file rows"""
    if not id:
        raise HTTPException(status_code=400, detail="Missing comparison ID")
    store.delete(id)
    return {"success": True}
