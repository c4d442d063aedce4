"""Summary: SQLite storage implementation for MinuteMate.

Importance: Provides a local-first document store for summary records and email logs.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from minutemate.errors import NotFoundError
from minutemate.models import (
    DailyStat,
    EmailLogEntry,
    StyleCount,
    SummaryMetadata,
    SummaryRecord,
    UserStats,
    count_words,
    utc_now,
)
from minutemate.storage.base import SummaryStore
from minutemate.storage.filters import SummaryFilter, fold_case, to_storage_timestamp

SUMMARY_COLUMNS = (
    "id, user_id, transcript, prompt, generated_summary, edited_summary, summary_style, "
    "language, word_count, processing_time, ai_provider, created_at, updated_at"
)


class SqliteStore(SummaryStore):
    """Summary: SQLite-backed storage for summary records.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables and indexes if they do not exist.

        Importance: Ensures the database is ready for summaries and history queries.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS summaries (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    transcript TEXT NOT NULL,
                    prompt TEXT NOT NULL,
                    generated_summary TEXT NOT NULL,
                    edited_summary TEXT,
                    summary_style TEXT NOT NULL DEFAULT 'custom',
                    language TEXT NOT NULL DEFAULT 'en',
                    word_count INTEGER NOT NULL DEFAULT 0,
                    processing_time INTEGER NOT NULL DEFAULT 0,
                    ai_provider TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS email_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    summary_id TEXT NOT NULL REFERENCES summaries(id) ON DELETE CASCADE,
                    recipients TEXT NOT NULL,
                    subject TEXT,
                    sent_at TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'sent'
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_summaries_user_created
                ON summaries (user_id, created_at DESC)
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_summaries_created ON summaries (created_at DESC)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_email_logs_summary ON email_logs (summary_id)"
            )
            connection.commit()

    def insert_summary(self, record: SummaryRecord) -> SummaryRecord:
        """Summary: Persist a new summary record.

        Importance: Stores the generated summary together with derived metadata.
        Alternatives: Insert an empty row first and fill in the summary later.
        """

        now = utc_now()
        created_at = record.created_at or now
        stored = replace(
            record,
            email_logs=(),
            metadata=replace(record.metadata, word_count=count_words(record.transcript)),
            created_at=created_at,
            updated_at=record.updated_at or created_at,
        )
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"""
                INSERT INTO summaries ({SUMMARY_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.id,
                    stored.user_id,
                    stored.transcript,
                    stored.prompt,
                    stored.generated_summary,
                    stored.edited_summary,
                    stored.summary_style,
                    stored.language,
                    stored.metadata.word_count,
                    stored.metadata.processing_time,
                    stored.metadata.ai_provider,
                    to_storage_timestamp(stored.created_at),
                    to_storage_timestamp(stored.updated_at),
                ),
            )
            connection.commit()
        return stored

    def get_summary(self, summary_id: str) -> SummaryRecord | None:
        """Summary: Retrieve a summary record by id.

        Importance: Supplies edit, email, and detail workflows.
        Alternatives: Filter records in memory after listing all.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"SELECT {SUMMARY_COLUMNS} FROM summaries WHERE id = ?",
                (summary_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            logs = self._load_email_logs(cursor, [summary_id])
        return _row_to_record(row, logs.get(summary_id, ()))

    def save_summary(self, record: SummaryRecord) -> SummaryRecord:
        """Summary: Update the editable fields of a summary.

        Importance: Applies edits while leaving the generated summary untouched.
        Alternatives: Replace the whole row on every save.
        """

        updated = replace(
            record,
            metadata=replace(record.metadata, word_count=count_words(record.transcript)),
            updated_at=utc_now(),
        )
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                UPDATE summaries
                SET prompt = ?, edited_summary = ?, summary_style = ?, language = ?,
                    word_count = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated.prompt,
                    updated.edited_summary,
                    updated.summary_style,
                    updated.language,
                    updated.metadata.word_count,
                    to_storage_timestamp(updated.updated_at),
                    updated.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Summary {record.id} does not exist")
            connection.commit()
        return updated

    def delete_summary(self, summary_id: str) -> bool:
        """Summary: Hard delete a summary and its email log.

        Importance: Supports explicit removal from history.
        Alternatives: Soft delete with a tombstone flag.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("DELETE FROM email_logs WHERE summary_id = ?", (summary_id,))
            cursor.execute("DELETE FROM summaries WHERE id = ?", (summary_id,))
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def append_email_log(self, summary_id: str, entry: EmailLogEntry) -> SummaryRecord | None:
        """Summary: Record a completed email send for a summary.

        Importance: Keeps an append-only history of where summaries were sent.
        Alternatives: Store email history as a JSON column on the summary.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT 1 FROM summaries WHERE id = ?", (summary_id,))
            if cursor.fetchone() is None:
                return None
            cursor.execute(
                """
                INSERT INTO email_logs (summary_id, recipients, subject, sent_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    summary_id,
                    json.dumps(list(entry.recipients)),
                    entry.subject,
                    to_storage_timestamp(entry.sent_at),
                    entry.status,
                ),
            )
            cursor.execute(
                "UPDATE summaries SET updated_at = ? WHERE id = ?",
                (to_storage_timestamp(utc_now()), summary_id),
            )
            connection.commit()
        return self.get_summary(summary_id)

    def find_summaries(
        self, summary_filter: SummaryFilter, skip: int, limit: int
    ) -> list[SummaryRecord]:
        """Summary: Retrieve a page of matching summaries, newest first.

        Importance: Backs history listing and search.
        Alternatives: Load every record and paginate in Python.
        """

        where, params = summary_filter.to_sql()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"""
                SELECT {SUMMARY_COLUMNS}
                FROM summaries
                WHERE {where}
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, skip),
            )
            rows = cursor.fetchall()
            logs = self._load_email_logs(cursor, [row[0] for row in rows])
        return [_row_to_record(row, logs.get(row[0], ())) for row in rows]

    def count_summaries(self, summary_filter: SummaryFilter) -> int:
        where, params = summary_filter.to_sql()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM summaries WHERE {where}", params)
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    def summary_stats(self, summary_filter: SummaryFilter) -> UserStats:
        """Summary: Aggregate totals with SQL.

        Importance: Avoids loading transcripts to compute dashboard numbers.
        Alternatives: Aggregate in Python over find_summaries.
        """

        where, params = summary_filter.to_sql()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"""
                SELECT COUNT(*), AVG(word_count), SUM(processing_time)
                FROM summaries
                WHERE {where}
                """,
                params,
            )
            total, average_words, processing = cursor.fetchone()
            cursor.execute(
                f"""
                SELECT COUNT(*)
                FROM email_logs
                WHERE summary_id IN (SELECT id FROM summaries WHERE {where})
                """,
                params,
            )
            emails = cursor.fetchone()[0]
        if not total:
            return UserStats()
        return UserStats(
            total_summaries=int(total),
            total_emails_sent=int(emails),
            average_word_count=round(float(average_words or 0), 2),
            total_processing_time=int(processing or 0),
        )

    def daily_stats(self, summary_filter: SummaryFilter) -> list[DailyStat]:
        where, params = summary_filter.to_sql()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"""
                SELECT substr(created_at, 1, 10) AS day, COUNT(*),
                       AVG(word_count), AVG(processing_time)
                FROM summaries
                WHERE {where}
                GROUP BY day
                ORDER BY day ASC
                """,
                params,
            )
            rows = cursor.fetchall()
        return [
            DailyStat(
                date=day,
                count=int(count),
                avg_word_count=round(float(words or 0), 2),
                avg_processing_time=round(float(processing or 0), 2),
            )
            for day, count, words, processing in rows
        ]

    def style_distribution(self, summary_filter: SummaryFilter) -> list[StyleCount]:
        where, params = summary_filter.to_sql()
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"""
                SELECT summary_style, COUNT(*)
                FROM summaries
                WHERE {where}
                GROUP BY summary_style
                ORDER BY summary_style ASC
                """,
                params,
            )
            rows = cursor.fetchall()
        return [StyleCount(style=style, count=int(count)) for style, count in rows]

    def _load_email_logs(
        self, cursor: sqlite3.Cursor, summary_ids: list[str]
    ) -> dict[str, tuple[EmailLogEntry, ...]]:
        """Summary: Fetch email logs for several summaries in one query.

        Importance: Avoids one query per record on history pages.
        Alternatives: Lazy-load logs only on the detail view.
        """

        if not summary_ids:
            return {}
        placeholders = ", ".join("?" for _ in summary_ids)
        cursor.execute(
            f"""
            SELECT summary_id, recipients, subject, sent_at, status
            FROM email_logs
            WHERE summary_id IN ({placeholders})
            ORDER BY id ASC
            """,
            summary_ids,
        )
        grouped: dict[str, list[EmailLogEntry]] = {}
        for summary_id, recipients, subject, sent_at, status in cursor.fetchall():
            grouped.setdefault(summary_id, []).append(
                EmailLogEntry(
                    recipients=tuple(json.loads(recipients)),
                    subject=subject or "",
                    sent_at=datetime.fromisoformat(sent_at),
                    status=status,
                )
            )
        return {key: tuple(value) for key, value in grouped.items()}

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            connection.execute("PRAGMA foreign_keys = ON")
            connection.create_function("fold_case", 1, fold_case, deterministic=True)
            yield connection
        finally:
            connection.close()


def _row_to_record(row: tuple[Any, ...], logs: tuple[EmailLogEntry, ...]) -> SummaryRecord:
    (
        summary_id,
        user_id,
        transcript,
        prompt,
        generated_summary,
        edited_summary,
        summary_style,
        language,
        word_count,
        processing_time,
        ai_provider,
        created_at,
        updated_at,
    ) = row
    return SummaryRecord(
        id=summary_id,
        user_id=user_id,
        transcript=transcript,
        prompt=prompt,
        generated_summary=generated_summary,
        edited_summary=edited_summary,
        summary_style=summary_style,
        language=language,
        email_logs=logs,
        metadata=SummaryMetadata(
            word_count=int(word_count or 0),
            processing_time=int(processing_time or 0),
            ai_provider=ai_provider or "",
        ),
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at),
    )
