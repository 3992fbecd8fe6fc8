"""Comparison history data models"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .scan import DiffContent


class HistoryTheme(BaseModel):
    """Theme reference as stored with a comparison"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    role: str | None = None
    type: str | None = None  # picker side, stored as role when role is absent


class ComparisonCreateRequest(BaseModel):
    """Request to save a finished comparison"""

    model_config = ConfigDict(populate_by_name=True)

    source_theme: HistoryTheme = Field(alias="sourceTheme")
    target_theme: HistoryTheme = Field(alias="targetTheme")
    differences: int = 0
    files: list[str] = []
    diff_contents: dict[str, DiffContent] = Field(default_factory=dict, alias="diffContents")
    title: str | None = None


class ComparisonFile(BaseModel):
    """One stored per-file diff body"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    file_name: str = Field(alias="fileName")
    source_content: str | None = Field(default=None, alias="sourceContent")
    target_content: str | None = Field(default=None, alias="targetContent")
    created_at: str = Field(alias="createdAt")


class ComparisonRecord(BaseModel):
    """A persisted comparison"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    shop: str
    title: str
    source_theme: HistoryTheme = Field(alias="sourceTheme")
    target_theme: HistoryTheme = Field(alias="targetTheme")
    created_at: str = Field(alias="createdAt")
    differences: int
    files: list[str]
    results: list[ComparisonFile] = []
