"""Single-file and direct diff API endpoints"""

from __future__ import annotations

import asyncio
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from models.diff import DiffMode, DiffReport, DirectDiffRequest
from services.asset_store import ThemeAssetClient
from services.diff_engine import DiffEngine

from .dependencies import get_client_factory, get_diff_engine

router = APIRouter()


@router.get("", response_model=DiffReport)
async def compare_file(
    source: str | None = None,
    target: str | None = None,
    file: str | None = None,
    source_content: str | None = Query(default=None, alias="sourceContent"),
    target_content: str | None = Query(default=None, alias="targetContent"),
    mode: DiffMode = DiffMode.CHAR,
    client_factory: Callable[[], ThemeAssetClient] = Depends(get_client_factory),
    engine: DiffEngine = Depends(get_diff_engine),
) -> DiffReport:
    """Diff one file across two themes, or two bodies passed directly"""
    # Bodies given directly: the store is not involved
    if source_content is not None and target_content is not None:
        return engine.build_report(file or "", source_content, target_content, mode=mode)

    if not source or not target or not file:
        raise HTTPException(status_code=400, detail="Missing parameters")

    client = client_factory()
    source_body, target_body = await asyncio.gather(
        client.get_asset(source, file),
        client.get_asset(target, file),
    )

    if source_body is None and target_body is None:
        raise HTTPException(status_code=404, detail=f"File '{file}' not found in either theme")

    return engine.build_report(file, source_body or "", target_body or "", mode=mode)


@router.post("", response_model=DiffReport)
async def compare_content(
    request: DirectDiffRequest,
    engine: DiffEngine = Depends(get_diff_engine),
) -> DiffReport:
    """Diff two raw bodies"""
    return engine.build_report(
        request.key,
        request.source_content,
        request.target_content,
        mode=request.mode,
        normalize=request.normalize,
    )


@router.post("/unified", response_class=PlainTextResponse)
async def compare_unified(
    request: DirectDiffRequest,
    engine: DiffEngine = Depends(get_diff_engine),
) -> str:
    """Unified diff text of two raw bodies"""
    return engine.unified_diff(request.source_content, request.target_content, request.key or "file")
