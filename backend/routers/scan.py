"""Theme scan API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from models.scan import CountResponse, ScanSummaryResponse
from services.orchestrator import ScanOrchestrator, diff_contents
from services.progress_stream import NDJSON_MEDIA_TYPE, ndjson_lines, sse_messages

from .dependencies import get_orchestrator

router = APIRouter()


def _require_themes(source: str, target: str):
    if not source or not target:
        raise HTTPException(status_code=400, detail="Missing theme IDs")


@router.get("")
async def scan_themes(
    request: Request,
    source: str = "",
    target: str = "",
    mode: str | None = None,
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """Compare two themes, streaming progress as newline-delimited JSON.

    With mode=count only the number of files to compare is returned.
    Listing failures are reported as a plain error response before any
    progress is streamed.
    """
    _require_themes(source, target)

    if mode == "count":
        total = await orchestrator.count(source, target)
        return CountResponse(total_file_count=total)

    session = await orchestrator.start(source, target)
    return StreamingResponse(
        ndjson_lines(session.events(request.is_disconnected)),
        media_type=NDJSON_MEDIA_TYPE,
    )


@router.get("/events")
async def scan_themes_sse(
    request: Request,
    source: str = "",
    target: str = "",
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """Same progress events as /api/scan, framed as Server-Sent Events"""
    _require_themes(source, target)
    session = await orchestrator.start(source, target)
    return EventSourceResponse(sse_messages(session.events(request.is_disconnected)))


@router.get("/report", response_model=ScanSummaryResponse)
async def scan_report(
    source: str = "",
    target: str = "",
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
) -> ScanSummaryResponse:
    """Run a whole scan and return the final report in one response"""
    _require_themes(source, target)
    report = await orchestrator.scan(source, target)

    return ScanSummaryResponse(
        total_files=report.total_files,
        scanned_files=report.scanned_count,
        different_files=len(report.differing_keys),
        files=report.differing_keys,
        all_files=report.all_keys,
        diff_contents=diff_contents(report),
        stats=report.stats,
    )
