"""
Scan Orchestrator - Fetch and diff every shared asset of two themes

A scan lists both themes up front (fatal on failure), then walks the
filtered intersection one key at a time. Each key's two bodies are fetched
concurrently; both requests still pass through the shared RateLimiter.
A failing key is recorded against that key and the scan moves on.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol

from models.diff import DiffMode, DiffStats
from models.scan import (
    DiffContent,
    FileDiffError,
    FileDiffOk,
    FileResult,
    ProgressEvent,
    ScanReport,
    ScanStage,
)

from .diff_engine import DiffEngine
from .errors import FetchFailure, ThemeDiffError
from .reconciler import DEFAULT_EXTENSIONS, AssetReconciler, filter_by_extension


class AssetSource(Protocol):
    async def list_assets(self, theme_id: str) -> list[dict[str, Any]]: ...

    async def get_asset(self, theme_id: str, key: str) -> Optional[str]: ...


@dataclass
class ScanSettings:
    """Knobs for one orchestrator"""

    allowed_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    progress_every: int = 5
    strip_trailing_whitespace: bool = False

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScanSettings":
        cfg = config.get("scan", {})
        return cls(
            allowed_extensions=tuple(cfg.get("allowedExtensions", DEFAULT_EXTENSIONS)),
            progress_every=max(1, int(cfg.get("progressEvery", 5))),
            strip_trailing_whitespace=bool(cfg.get("stripTrailingWhitespace", False)),
        )


def diff_contents(report: ScanReport) -> dict[str, DiffContent]:
    """Wire bodies for differing and failed keys, in processing order"""
    contents = {}
    for key, result in report.per_file.items():
        if isinstance(result, FileDiffError):
            contents[key] = DiffContent(error=result.error)
        elif result.report.differs:
            contents[key] = DiffContent(
                source_content=result.report.source_body,
                target_content=result.report.target_body,
                is_different=True,
                stats=result.report.stats,
            )
    return contents


@dataclass
class ScanSession:
    """One scan in flight; produces its progress events exactly once"""

    source_theme: str
    target_theme: str
    client: AssetSource
    engine: DiffEngine
    settings: ScanSettings
    report: ScanReport
    stage: ScanStage = ScanStage.SCANNING
    _started: bool = field(default=False, repr=False)

    def _progress(self, current_file: str | None = None, error: str | None = None) -> ProgressEvent:
        return ProgressEvent(
            stage=self.stage,
            scanned_files=self.report.scanned_count,
            diffed_files=len(self.report.differing_keys),
            current_file=current_file,
            error=error,
        )

    def final_event(self) -> ProgressEvent:
        report = self.report
        return ProgressEvent(
            stage=ScanStage.IDLE,
            done=True,
            scanned_files=report.scanned_count,
            diffed_files=len(report.differing_keys),
            total_files=report.total_files,
            different_files=len(report.differing_keys),
            files=list(report.differing_keys),
            diff_contents=diff_contents(report),
        )

    async def _fetch(self, theme_id: str, key: str) -> Optional[str]:
        try:
            return await self.client.get_asset(theme_id, key)
        except ThemeDiffError:
            raise
        except Exception as e:
            raise FetchFailure(key, theme_id, e) from e

    async def _process(self, key: str) -> Optional[FileResult]:
        """Fetch and diff one key; None when both bodies are empty or absent"""
        bodies = await asyncio.gather(
            self._fetch(self.source_theme, key),
            self._fetch(self.target_theme, key),
            return_exceptions=True,
        )
        for body in bodies:
            if isinstance(body, asyncio.CancelledError):
                raise body
            if isinstance(body, BaseException):
                print(f"[Scan] {key}: {body}")
                return FileDiffError(error=str(body))

        # Absent bodies compare as empty; nothing to report when both are empty
        source_body, target_body = (body or "" for body in bodies)
        if not source_body and not target_body:
            return None

        try:
            diff_report = self.engine.build_report(
                key,
                source_body,
                target_body,
                mode=DiffMode.LINE,
                strip_trailing_whitespace=self.settings.strip_trailing_whitespace,
            )
        except Exception as e:
            print(f"[Scan] {key}: diff failed: {e}")
            return FileDiffError(error=f"Failed to diff file content: {e}")

        # A body missing on one side is not reported as a difference
        differs = diff_report.differs and bool(source_body) and bool(target_body)
        return FileDiffOk(report=diff_report.model_copy(update={"differs": differs}))

    def _record(self, key: str, result: Optional[FileResult]):
        report = self.report
        report.scanned_count += 1
        if result is None:
            return
        report.per_file[key] = result
        if isinstance(result, FileDiffOk) and result.report.differs:
            report.differing_keys.append(key)
            stats = result.report.stats
            additions = report.stats.additions + stats.additions
            deletions = report.stats.deletions + stats.deletions
            report.stats = DiffStats(additions=additions, deletions=deletions, lines_changed=additions + deletions)

    async def events(
        self, is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None
    ) -> AsyncIterator[ProgressEvent]:
        """Run the scan, yielding progress events and then one final event.

        Stops without a final event when is_disconnected reports that the
        consumer went away.
        """
        if self._started:
            raise RuntimeError("Scan events can only be consumed once")
        self._started = True

        report = self.report
        self.stage = ScanStage.SCANNING
        yield ProgressEvent(stage=self.stage, total_files=report.total_files, scanned_files=0, diffed_files=0)

        self.stage = ScanStage.DIFFING
        try:
            for key in report.keys:
                if is_disconnected is not None and await is_disconnected():
                    print(f"[Scan] Consumer disconnected after {report.scanned_count} files, stopping")
                    self.stage = ScanStage.IDLE
                    return

                result = await self._process(key)
                self._record(key, result)

                if isinstance(result, FileDiffError):
                    yield self._progress(current_file=key, error=f"{key}: {result.error}")
                elif isinstance(result, FileDiffOk) and result.report.differs:
                    yield self._progress(current_file=key)
                elif report.scanned_count % self.settings.progress_every == 0:
                    yield self._progress(current_file=key)
        except Exception:
            self.stage = ScanStage.ERROR
            raise

        self.stage = ScanStage.IDLE
        print(
            f"[Scan] {self.source_theme} vs {self.target_theme}: {report.scanned_count} scanned, "
            f"{len(report.differing_keys)} different, {len(report.error_keys)} failed"
        )
        yield self.final_event()


class ScanOrchestrator:
    """Entry point for count-only and full scans"""

    def __init__(
        self,
        client: AssetSource,
        engine: Optional[DiffEngine] = None,
        settings: Optional[ScanSettings] = None,
    ):
        self.client = client
        self.engine = engine or DiffEngine()
        self.settings = settings or ScanSettings()
        self.reconciler = AssetReconciler(client)

    async def count(self, source_theme: str, target_theme: str) -> int:
        """Number of files a scan would compare; fetches no bodies"""
        keys = await self.reconciler.list_intersection_filtered(
            source_theme, target_theme, self.settings.allowed_extensions
        )
        return len(keys)

    async def start(self, source_theme: str, target_theme: str) -> ScanSession:
        """List both themes and prepare a scan; raises ListingFailure up front"""
        all_keys = await self.reconciler.list_intersection(source_theme, target_theme)
        keys = filter_by_extension(all_keys, self.settings.allowed_extensions)
        print(f"[Scan] {len(all_keys)} shared assets, {len(keys)} to compare")
        return ScanSession(
            source_theme=source_theme,
            target_theme=target_theme,
            client=self.client,
            engine=self.engine,
            settings=self.settings,
            report=ScanReport(all_keys=all_keys, keys=keys),
        )

    async def scan(self, source_theme: str, target_theme: str) -> ScanReport:
        """Run a scan to completion and return its report"""
        session = await self.start(source_theme, target_theme)
        async for _ in session.events():
            pass
        return session.report
