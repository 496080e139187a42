"""DuckDB read/write store for diary entries.

Manages ``data/diary.duckdb``: one row per (user, date) holding the diary
text and the tutor's raw markdown reply. The reply is stored unparsed;
``diarylens.analysis_parser`` rebuilds the structured view on read.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, fields
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import duckdb

SCHEMA_VERSION = "1.0.0"

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS diaries (
    entry_id VARCHAR NOT NULL,
    user_id VARCHAR NOT NULL,
    entry_date VARCHAR NOT NULL,
    title VARCHAR NOT NULL DEFAULT '',
    original_content VARCHAR NOT NULL DEFAULT '',
    analysis_result VARCHAR NOT NULL DEFAULT '',
    created_at VARCHAR NOT NULL,
    updated_at VARCHAR NOT NULL,
    PRIMARY KEY (user_id, entry_date)
)
"""

_ENTRY_COLS = [
    "entry_id", "user_id", "entry_date", "title",
    "original_content", "analysis_result", "created_at", "updated_at",
]


@dataclass(frozen=True, slots=True)
class DiaryEntry:
    entry_id: str
    user_id: str
    date: str
    title: str
    original_content: str
    analysis_result: str
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class DiarySummary:
    """Sidebar row: enough to list and select an entry."""

    entry_id: str
    date: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"entry_id": self.entry_id, "date": self.date, "title": self.title}


def _now() -> str:
    return datetime.now(UTC).isoformat()


def normalize_date(raw: str | None) -> str:
    """Return ``raw`` as ``YYYY-MM-DD``; today when empty.

    Raises ValueError for anything that is not an ISO date or datetime.
    """
    if not raw:
        return date.today().isoformat()
    raw = raw.strip()
    if DATE_RE.match(raw):
        return date.fromisoformat(raw).isoformat()
    return datetime.fromisoformat(raw).date().isoformat()


def group_by_month(summaries: list[DiarySummary]) -> dict[str, list[DiarySummary]]:
    """Group summaries under ``"<Month> <YYYY>"`` keys, keeping input order."""
    groups: dict[str, list[DiarySummary]] = {}
    for summary in summaries:
        key = date.fromisoformat(summary.date).strftime("%B %Y")
        groups.setdefault(key, []).append(summary)
    return groups


class DiaryStore:
    """Read/write interface to the diary database."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        create_if_missing: bool = False,
    ) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"Diary database not found: {self._db_path}")
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = duckdb.connect(str(self._db_path))
        self._create_schema()

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        self._conn.execute(
            "INSERT OR REPLACE INTO _schema_version VALUES (?, ?)",
            ["diaries", SCHEMA_VERSION],
        )

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> DiaryStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── Reads ────────────────────────────────────────────────────────

    def get_by_date(self, user_id: str, day: str) -> DiaryEntry | None:
        row = self._conn.execute(
            f"SELECT {', '.join(_ENTRY_COLS)} FROM diaries "
            "WHERE user_id = ? AND entry_date = ?",
            [user_id, day],
        ).fetchone()
        if row is None:
            return None
        return DiaryEntry(*row)

    def list_summaries(self, user_id: str) -> list[DiarySummary]:
        """All entries for ``user_id``, newest date first."""
        rows = self._conn.execute(
            "SELECT entry_id, entry_date, title FROM diaries "
            "WHERE user_id = ? ORDER BY entry_date DESC",
            [user_id],
        ).fetchall()
        return [DiarySummary(*row) for row in rows]

    # ── Writes ───────────────────────────────────────────────────────

    def save(
        self,
        user_id: str,
        day: str,
        title: str,
        content: str,
        analysis: str,
    ) -> DiaryEntry:
        """Insert or update the entry for (user_id, day).

        An update keeps the existing ``entry_id`` and ``created_at``.
        """
        now = _now()
        existing = self.get_by_date(user_id, day)
        if existing is None:
            self._conn.execute(
                f"INSERT INTO diaries ({', '.join(_ENTRY_COLS)}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [str(uuid.uuid4()), user_id, day, title, content, analysis, now, now],
            )
        else:
            self._conn.execute(
                "UPDATE diaries SET title = ?, original_content = ?, "
                "analysis_result = ?, updated_at = ? "
                "WHERE user_id = ? AND entry_date = ?",
                [title, content, analysis, now, user_id, day],
            )
        saved = self.get_by_date(user_id, day)
        assert saved is not None
        return saved

    def delete(self, user_id: str, entry_id: str) -> bool:
        """Delete one entry owned by ``user_id``. Returns False if none matched."""
        row = self._conn.execute(
            "SELECT count(*) FROM diaries WHERE user_id = ? AND entry_id = ?",
            [user_id, entry_id],
        ).fetchone()
        if not row or row[0] == 0:
            return False
        self._conn.execute(
            "DELETE FROM diaries WHERE user_id = ? AND entry_id = ?",
            [user_id, entry_id],
        )
        return True
