"""Models module - Pydantic data models"""

from .diff import DiffKind, DiffMode, DiffOutcome, DiffReport, DiffSpan, DiffStats, DirectDiffRequest
from .history import ComparisonCreateRequest, ComparisonFile, ComparisonRecord, HistoryTheme
from .scan import (
    CountResponse,
    DiffContent,
    FileDiffError,
    FileDiffOk,
    FileResult,
    ProgressEvent,
    ScanReport,
    ScanStage,
    ScanSummaryResponse,
)
from .theme import ThemeListItem, ThemeRef

__all__ = [
    # Diff models
    "DiffKind",
    "DiffMode",
    "DiffOutcome",
    "DiffReport",
    "DiffSpan",
    "DiffStats",
    "DirectDiffRequest",
    # Scan models
    "CountResponse",
    "DiffContent",
    "FileDiffError",
    "FileDiffOk",
    "FileResult",
    "ProgressEvent",
    "ScanReport",
    "ScanStage",
    "ScanSummaryResponse",
    # History models
    "ComparisonCreateRequest",
    "ComparisonFile",
    "ComparisonRecord",
    "HistoryTheme",
    # Theme models
    "ThemeListItem",
    "ThemeRef",
]
