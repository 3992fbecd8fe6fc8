"""Tests for the SQLite comparison store."""

import sqlite3

import pytest

from models.history import ComparisonCreateRequest
from services.comparison_store import ComparisonStore, open_store
from services.errors import ComparisonNotFound

SHOP = "test-shop.myshopify.com"


def make_request(**overrides):
    data = {
        "sourceTheme": {"id": "1", "name": "Dawn", "type": "source"},
        "targetTheme": {"id": "2", "name": "Dawn copy", "type": "target"},
        "differences": 1,
        "files": ["layout/theme.liquid"],
        "diffContents": {
            "layout/theme.liquid": {"sourceContent": "a\n", "targetContent": "b\n", "isDifferent": True},
            "assets/broken.js": {"error": "Failed to fetch file content"},
        },
    }
    data.update(overrides)
    return ComparisonCreateRequest.model_validate(data)


class TestComparisonStore:
    def test_create_and_get(self, comparison_store):
        record = comparison_store.create(SHOP, make_request())

        assert record.shop == SHOP
        assert record.title == "Dawn vs Dawn copy"
        assert record.differences == 1
        assert record.files == ["layout/theme.liquid"]
        assert record.source_theme.role == "source"

        fetched = comparison_store.get(record.id)
        assert [result.file_name for result in fetched.results] == ["layout/theme.liquid"]
        assert fetched.results[0].source_content == "a\n"
        assert fetched.results[0].target_content == "b\n"

    def test_explicit_title(self, comparison_store):
        record = comparison_store.create(SHOP, make_request(title="Before launch"))
        assert record.title == "Before launch"

    def test_list_is_newest_first_without_bodies(self, comparison_store):
        first = comparison_store.create(SHOP, make_request())
        second = comparison_store.create(SHOP, make_request(files=[]))
        comparison_store.create("other.myshopify.com", make_request())

        records = comparison_store.list(SHOP)

        assert [record.id for record in records] == [second.id, first.id]
        assert records[0].files == []
        assert records[1].results[0].file_name == "layout/theme.liquid"
        assert records[1].results[0].source_content is None

    def test_delete_removes_record_and_rows(self, comparison_store):
        record = comparison_store.create(SHOP, make_request())

        comparison_store.delete(record.id)

        assert comparison_store.list(SHOP) == []
        with pytest.raises(ComparisonNotFound):
            comparison_store.get(record.id)
        conn = sqlite3.connect(comparison_store.db_path)
        try:
            assert conn.execute("SELECT COUNT(*) FROM comparison_result").fetchone()[0] == 0
        finally:
            conn.close()

    def test_delete_unknown(self, comparison_store):
        with pytest.raises(ComparisonNotFound):
            comparison_store.delete("missing")

    def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "history.db"
        record = ComparisonStore(path).create(SHOP, make_request())

        assert ComparisonStore(path).get(record.id).title == "Dawn vs Dawn copy"


def test_open_store_defaults_to_config_dir(tmp_path):
    store = open_store({"database": {"path": ""}}, tmp_path)
    assert store.db_path == tmp_path / "comparisons.db"

    custom = tmp_path / "nested" / "custom.db"
    assert open_store({"database": {"path": str(custom)}}, tmp_path).db_path == custom
