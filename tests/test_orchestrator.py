"""Tests for the scan orchestrator."""

import asyncio

import pytest

from models.scan import FileDiffError, FileDiffOk, ScanStage
from services.errors import ListingFailure, ThrottledError
from services.orchestrator import ScanOrchestrator, ScanSettings
from services.rate_limiter import RateLimiter, RetryPolicy
from tests.conftest import FakeAssetStore


def collect(session, is_disconnected=None):
    async def _collect():
        return [event async for event in session.events(is_disconnected)]

    return asyncio.run(_collect())


def start(orchestrator, source="1", target="2"):
    return asyncio.run(orchestrator.start(source, target))


def twelve_files(failing=()):
    source, target = {}, {}
    for i in range(1, 13):
        key = f"file{i}.liquid"
        source[key] = f"line\nsource {i}\n"
        # even files differ
        target[key] = f"line\ntarget {i}\n" if i % 2 == 0 else f"line\nsource {i}\n"
    return FakeAssetStore({"1": source, "2": target}, failing_keys=failing)


class TestScan:
    def test_failing_file_does_not_abort_scan(self):
        store = twelve_files(failing={"file7.liquid"})
        orchestrator = ScanOrchestrator(store)

        report = asyncio.run(orchestrator.scan("1", "2"))

        assert report.scanned_count == 12
        assert isinstance(report.per_file["file7.liquid"], FileDiffError)
        assert "internal error" in report.per_file["file7.liquid"].error
        assert "file7.liquid" not in report.differing_keys
        assert report.differing_keys == [f"file{i}.liquid" for i in range(2, 13, 2)]
        assert report.error_keys == ["file7.liquid"]

    def test_differing_keys_have_differs_set(self):
        report = asyncio.run(ScanOrchestrator(twelve_files()).scan("1", "2"))

        assert set(report.differing_keys) <= set(report.all_keys)
        for key in report.differing_keys:
            assert report.per_file[key].report.differs is True

    def test_stats_cover_differing_files_only(self):
        store = FakeAssetStore(
            {
                "1": {"a.liquid": "x\ny\n", "b.liquid": "same\n", "c.liquid": "old\n"},
                "2": {"a.liquid": "x\nz\n", "b.liquid": "same\n", "c.liquid": "new\nnewer\n"},
            },
            failing_keys={"b.liquid"},
        )
        report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

        assert report.stats.additions == 3
        assert report.stats.deletions == 2
        assert report.stats.lines_changed == report.stats.additions + report.stats.deletions

    def test_absent_on_both_sides_is_excluded(self):
        store = FakeAssetStore(
            {
                "1": {"ghost.liquid": None, "real.liquid": "a\n"},
                "2": {"ghost.liquid": None, "real.liquid": "b\n"},
            }
        )
        report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

        assert "ghost.liquid" not in report.per_file
        assert report.scanned_count == 2
        assert report.differing_keys == ["real.liquid"]

    def test_empty_on_both_sides_is_excluded(self):
        store = FakeAssetStore(
            {
                "1": {"empty.liquid": "", "mixed.liquid": None, "real.liquid": "a\n"},
                "2": {"empty.liquid": "", "mixed.liquid": "", "real.liquid": "b\n"},
            }
        )
        report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

        assert "empty.liquid" not in report.per_file
        assert "mixed.liquid" not in report.per_file
        assert report.scanned_count == 3
        assert report.differing_keys == ["real.liquid"]

    def test_empty_side_is_not_reported_as_different(self):
        store = FakeAssetStore(
            {
                "1": {"new.liquid": None, "blank.json": ""},
                "2": {"new.liquid": "brand new\n", "blank.json": "{}\n"},
            }
        )
        report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

        assert report.differing_keys == []
        result = report.per_file["new.liquid"]
        assert isinstance(result, FileDiffOk)
        assert result.report.differs is False
        assert result.report.source_body == ""

    def test_extension_filter_applies_before_fetching(self, store):
        report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

        assert "assets/logo.png" in report.all_keys
        assert "assets/logo.png" not in report.keys
        assert all(key != "assets/logo.png" for _, key in store.asset_calls)
        assert report.differing_keys == ["layout/theme.liquid", "assets/app.js"]

    def test_listing_failure_raised_before_any_event(self):
        store = FakeAssetStore({"1": {"a.liquid": "a"}, "2": {"a.liquid": "b"}}, failing_listings={"1"})

        with pytest.raises(ListingFailure):
            start(ScanOrchestrator(store))
        assert store.asset_calls == []

    def test_count_fetches_no_bodies(self, store):
        total = asyncio.run(ScanOrchestrator(store).count("1", "2"))

        assert total == 3
        assert store.asset_calls == []


class TestProgressEvents:
    def test_cadence_and_final_event(self):
        source = {f"f{i:02}.json": "{}\n" for i in range(12)}
        store = FakeAssetStore({"1": source, "2": dict(source)})
        session = start(ScanOrchestrator(store))

        events = collect(session)

        first, *progress, final = events
        assert first.stage == ScanStage.SCANNING
        assert first.total_files == 12
        assert [event.scanned_files for event in progress] == [5, 10]
        assert all(event.stage == ScanStage.DIFFING for event in progress)
        assert final.done is True
        assert final.stage == ScanStage.IDLE
        assert final.scanned_files == 12
        assert final.files == []
        assert session.stage == ScanStage.IDLE

    def test_difference_and_error_are_reported_immediately(self):
        store = FakeAssetStore(
            {
                "1": {"a.liquid": "a\n", "b.liquid": "b\n", "c.liquid": "c\n"},
                "2": {"a.liquid": "a\n", "b.liquid": "B\n", "c.liquid": "c\n"},
            },
            failing_keys={"c.liquid"},
        )
        events = collect(start(ScanOrchestrator(store)))

        assert events[1].current_file == "b.liquid"
        assert events[1].diffed_files == 1
        assert events[2].current_file == "c.liquid"
        assert events[2].error.startswith("c.liquid:")
        assert events[2].done is None

        final = events[-1]
        assert final.files == ["b.liquid"]
        assert final.diff_contents["b.liquid"].target_content == "B\n"
        assert final.diff_contents["b.liquid"].is_different is True
        assert final.diff_contents["c.liquid"].error is not None
        assert "a.liquid" not in final.diff_contents

    def test_scanned_files_never_decrease(self):
        events = collect(start(ScanOrchestrator(twelve_files(failing={"file3.liquid"}))))
        counts = [event.scanned_files for event in events]
        assert counts == sorted(counts)

    def test_progress_interval_is_configurable(self):
        source = {f"f{i}.js": "x" for i in range(6)}
        store = FakeAssetStore({"1": source, "2": dict(source)})
        orchestrator = ScanOrchestrator(store, settings=ScanSettings(progress_every=2))

        events = collect(start(orchestrator))

        assert [event.scanned_files for event in events[1:-1]] == [2, 4, 6]

    def test_disconnect_stops_dispatching(self):
        store = twelve_files()
        session = start(ScanOrchestrator(store))
        checks = 0

        async def is_disconnected():
            nonlocal checks
            checks += 1
            return checks > 3

        events = collect(session, is_disconnected)

        assert not any(event.done for event in events)
        assert session.report.scanned_count == 3
        assert len(store.asset_calls) == 6

    def test_events_cannot_be_replayed(self):
        session = start(ScanOrchestrator(twelve_files()))
        collect(session)

        with pytest.raises(RuntimeError):
            collect(session)


class RateLimitedStore(FakeAssetStore):
    """Routes every body fetch through a RateLimiter and tracks concurrency."""

    def __init__(self, themes, limiter, throttle_once=()):
        super().__init__(themes)
        self.limiter = limiter
        self.throttle_once = set(throttle_once)
        self.in_flight = 0
        self.peak = 0

    async def get_asset(self, theme_id, key):
        async def _request():
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.001)
            self.in_flight -= 1
            if (theme_id, key) in self.throttle_once:
                self.throttle_once.discard((theme_id, key))
                raise ThrottledError("slow down", key)
            return await FakeAssetStore.get_asset(self, theme_id, key)

        return await self.limiter.enqueue(_request, key)


def test_body_fetches_share_one_limiter():
    limiter = RateLimiter(interval=0.001, retry_policy=RetryPolicy(base_delay=0.001))
    source = {f"f{i}.liquid": f"{i}\n" for i in range(4)}
    target = {f"f{i}.liquid": f"{i}{i}\n" for i in range(4)}
    store = RateLimitedStore({"1": source, "2": target}, limiter, throttle_once={("2", "f1.liquid")})

    report = asyncio.run(ScanOrchestrator(store).scan("1", "2"))

    assert store.peak == 1
    assert report.differing_keys == list(source)
    assert report.error_keys == []
