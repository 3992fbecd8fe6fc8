"""
Comparison Store - Persist finished comparisons in SQLite
"""

from __future__ import annotations

import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.history import ComparisonCreateRequest, ComparisonFile, ComparisonRecord, HistoryTheme

from .errors import ComparisonNotFound


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ComparisonStore:
    """Saved comparisons and their per-file diff bodies.

    Records are written once and deleted as a whole (per-file rows first).
    Thread-safe; every operation opens its own connection.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_database(self):
        """Initialize SQLite schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            conn = self._connect()
            try:
                conn.executescript("""
                    CREATE TABLE IF NOT EXISTS theme_info (
                        id TEXT NOT NULL PRIMARY KEY,
                        name TEXT NOT NULL,
                        role TEXT
                    );
                    CREATE TABLE IF NOT EXISTS theme_comparison (
                        id TEXT NOT NULL PRIMARY KEY,
                        shop TEXT NOT NULL,
                        title TEXT NOT NULL,
                        source_theme_id TEXT NOT NULL REFERENCES theme_info (id),
                        target_theme_id TEXT NOT NULL REFERENCES theme_info (id),
                        created_at TEXT NOT NULL,
                        differences INTEGER NOT NULL DEFAULT 0,
                        files TEXT NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS comparison_result (
                        id TEXT NOT NULL PRIMARY KEY,
                        comparison_id TEXT NOT NULL REFERENCES theme_comparison (id),
                        file_name TEXT NOT NULL,
                        source_content TEXT,
                        target_content TEXT,
                        created_at TEXT NOT NULL
                    );
                    CREATE INDEX IF NOT EXISTS idx_comparison_shop ON theme_comparison (shop, created_at);
                    CREATE INDEX IF NOT EXISTS idx_result_comparison ON comparison_result (comparison_id);
                """)
                conn.commit()
            finally:
                conn.close()

    def _upsert_theme(self, conn: sqlite3.Connection, theme: HistoryTheme):
        conn.execute(
            """
            INSERT INTO theme_info (id, name, role) VALUES (?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET name = excluded.name, role = excluded.role
            """,
            (theme.id, theme.name, theme.role or theme.type),
        )

    def create(self, shop: str, request: ComparisonCreateRequest) -> ComparisonRecord:
        """Store a finished comparison with one row per file body"""
        comparison_id = uuid.uuid4().hex
        created_at = _now()
        title = request.title or f"{request.source_theme.name} vs {request.target_theme.name}"

        with self._lock:
            conn = self._connect()
            try:
                self._upsert_theme(conn, request.source_theme)
                self._upsert_theme(conn, request.target_theme)
                conn.execute(
                    """
                    INSERT INTO theme_comparison
                        (id, shop, title, source_theme_id, target_theme_id, created_at, differences, files)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        comparison_id,
                        shop,
                        title,
                        request.source_theme.id,
                        request.target_theme.id,
                        created_at,
                        request.differences,
                        "\n".join(request.files),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO comparison_result
                        (id, comparison_id, file_name, source_content, target_content, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            uuid.uuid4().hex,
                            comparison_id,
                            file_name,
                            content.source_content,
                            content.target_content,
                            created_at,
                        )
                        for file_name, content in request.diff_contents.items()
                        if content.error is None
                    ],
                )
                conn.commit()
            finally:
                conn.close()

        print(f"[ComparisonStore] Saved comparison {comparison_id} ({len(request.files)} files)")
        return self.get(comparison_id)

    def _theme(self, conn: sqlite3.Connection, theme_id: str) -> HistoryTheme:
        row = conn.execute("SELECT id, name, role FROM theme_info WHERE id = ?", (theme_id,)).fetchone()
        if row is None:
            return HistoryTheme(id=theme_id, name="")
        return HistoryTheme(id=row["id"], name=row["name"], role=row["role"])

    def _record(self, conn: sqlite3.Connection, row: sqlite3.Row, with_bodies: bool) -> ComparisonRecord:
        columns = "id, file_name, created_at"
        if with_bodies:
            columns += ", source_content, target_content"
        results = conn.execute(
            f"SELECT {columns} FROM comparison_result WHERE comparison_id = ? ORDER BY rowid",
            (row["id"],),
        ).fetchall()
        return ComparisonRecord(
            id=row["id"],
            shop=row["shop"],
            title=row["title"],
            source_theme=self._theme(conn, row["source_theme_id"]),
            target_theme=self._theme(conn, row["target_theme_id"]),
            created_at=row["created_at"],
            differences=row["differences"],
            files=row["files"].split("\n") if row["files"] else [],
            results=[
                ComparisonFile(
                    id=result["id"],
                    file_name=result["file_name"],
                    created_at=result["created_at"],
                    source_content=result["source_content"] if with_bodies else None,
                    target_content=result["target_content"] if with_bodies else None,
                )
                for result in results
            ],
        )

    def get(self, comparison_id: str) -> ComparisonRecord:
        """Full record including per-file bodies"""
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT * FROM theme_comparison WHERE id = ?", (comparison_id,)).fetchone()
                if row is None:
                    raise ComparisonNotFound(comparison_id)
                return self._record(conn, row, with_bodies=True)
            finally:
                conn.close()

    def list(self, shop: str) -> list[ComparisonRecord]:
        """Summaries for one shop, newest first, without file bodies"""
        with self._lock:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT * FROM theme_comparison WHERE shop = ? ORDER BY created_at DESC, rowid DESC",
                    (shop,),
                ).fetchall()
                return [self._record(conn, row, with_bodies=False) for row in rows]
            finally:
                conn.close()

    def delete(self, comparison_id: str):
        """Remove a record and its per-file rows; raises ComparisonNotFound"""
        with self._lock:
            conn = self._connect()
            try:
                exists = conn.execute("SELECT 1 FROM theme_comparison WHERE id = ?", (comparison_id,)).fetchone()
                if exists is None:
                    raise ComparisonNotFound(comparison_id)
                conn.execute("DELETE FROM comparison_result WHERE comparison_id = ?", (comparison_id,))
                conn.execute("DELETE FROM theme_comparison WHERE id = ?", (comparison_id,))
                conn.commit()
            finally:
                conn.close()
        print(f"[ComparisonStore] Deleted comparison {comparison_id}")


def open_store(config: dict, config_dir: Optional[Path] = None) -> ComparisonStore:
    """Store at database.path, or comparisons.db next to the config file"""
    db_path = config.get("database", {}).get("path")
    if not db_path:
        db_path = (config_dir or Path.cwd()) / "comparisons.db"
    return ComparisonStore(Path(db_path))
