"""Diff-related data models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DiffKind(str, Enum):
    """Kind of a diff span"""

    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class DiffMode(str, Enum):
    """Diff granularity"""

    LINE = "line"
    CHAR = "char"


class DiffSpan(BaseModel):
    """A contiguous run of equal, inserted or deleted text"""

    model_config = ConfigDict(frozen=True)

    kind: DiffKind
    text: str


class DiffStats(BaseModel):
    """Aggregate counts for a diff"""

    additions: int = 0
    deletions: int = 0
    lines_changed: int = Field(default=0, alias="linesChanged")

    model_config = ConfigDict(populate_by_name=True)


class DiffOutcome(BaseModel):
    """Raw diff engine output"""

    spans: list[DiffSpan]
    stats: DiffStats


class DiffReport(BaseModel):
    """Complete diff result for one asset"""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    source_body: str = Field(alias="sourceContent")
    target_body: str = Field(alias="targetContent")
    mode: DiffMode = DiffMode.LINE
    spans: list[DiffSpan]
    stats: DiffStats
    differs: bool


class DirectDiffRequest(BaseModel):
    """Request to diff two raw bodies without touching the asset store"""

    model_config = ConfigDict(populate_by_name=True)

    source_content: str = Field(alias="sourceContent")
    target_content: str = Field(alias="targetContent")
    key: str = ""
    mode: DiffMode = DiffMode.CHAR
    normalize: bool = True
