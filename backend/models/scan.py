"""Scan and progress stream data models"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .diff import DiffReport, DiffStats


class ScanStage(str, Enum):
    """Lifecycle of a single scan"""

    IDLE = "idle"
    SCANNING = "scanning"
    DIFFING = "diffing"
    ERROR = "error"


class FileDiffOk(BaseModel):
    """Per-file result: the asset was fetched and diffed"""

    status: Literal["ok"] = "ok"
    report: DiffReport


class FileDiffError(BaseModel):
    """Per-file result: fetching or diffing this asset failed"""

    status: Literal["error"] = "error"
    error: str


FileResult = Annotated[Union[FileDiffOk, FileDiffError], Field(discriminator="status")]


class ScanReport(BaseModel):
    """Aggregated result of one scan"""

    all_keys: list[str] = []  # intersection before the extension filter
    keys: list[str] = []  # filtered intersection, in processing order
    scanned_count: int = 0
    differing_keys: list[str] = []
    per_file: dict[str, FileResult] = {}
    stats: DiffStats = Field(default_factory=DiffStats)

    @property
    def total_files(self) -> int:
        return len(self.keys)

    @property
    def error_keys(self) -> list[str]:
        return [key for key, result in self.per_file.items() if isinstance(result, FileDiffError)]


class DiffContent(BaseModel):
    """Wire shape of one entry in the final event's diffContents"""

    model_config = ConfigDict(populate_by_name=True)

    source_content: str | None = Field(default=None, alias="sourceContent")
    target_content: str | None = Field(default=None, alias="targetContent")
    is_different: bool | None = Field(default=None, alias="isDifferent")
    stats: DiffStats | None = None
    error: str | None = None


class ProgressEvent(BaseModel):
    """One line of the progress stream"""

    model_config = ConfigDict(populate_by_name=True)

    stage: ScanStage | None = None
    scanned_files: int | None = Field(default=None, alias="scannedFiles")
    diffed_files: int | None = Field(default=None, alias="diffedFiles")
    current_file: str | None = Field(default=None, alias="currentFile")
    total_files: int | None = Field(default=None, alias="totalFiles")
    error: str | None = None
    done: bool | None = None
    different_files: int | None = Field(default=None, alias="differentFiles")
    files: list[str] | None = None
    diff_contents: dict[str, DiffContent] | None = Field(default=None, alias="diffContents")

    @property
    def is_final(self) -> bool:
        return self.done is True


class CountResponse(BaseModel):
    """Cheap scan path: only the number of files that would be compared"""

    model_config = ConfigDict(populate_by_name=True)

    total_file_count: int = Field(alias="totalFileCount")


class ScanSummaryResponse(BaseModel):
    """Whole-report scan response for non-streaming consumers"""

    model_config = ConfigDict(populate_by_name=True)

    total_files: int = Field(alias="totalFiles")
    scanned_files: int = Field(alias="scannedFiles")
    different_files: int = Field(alias="differentFiles")
    files: list[str]
    all_files: list[str] = Field(alias="allFiles")
    diff_contents: dict[str, DiffContent] = Field(alias="diffContents")
    stats: DiffStats
