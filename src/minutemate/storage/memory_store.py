"""Summary: In-memory storage implementation for MinuteMate.

Importance: Exercises the filter contract and services without a database file.
Alternatives: Point SqliteStore at a temporary file in every test.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import replace

from minutemate.errors import NotFoundError
from minutemate.models import (
    DailyStat,
    EmailLogEntry,
    StyleCount,
    SummaryRecord,
    UserStats,
    count_words,
    utc_now,
)
from minutemate.storage.base import SummaryStore
from minutemate.storage.filters import SummaryFilter, to_storage_timestamp


class MemoryStore(SummaryStore):
    """Summary: Dict-backed summary store with SQLite-equivalent semantics.

    Importance: Keeps history queries testable without a live store.
    Alternatives: Mock each store method individually.
    """

    def __init__(self) -> None:
        self._records: dict[str, SummaryRecord] = {}
        self._sequence: dict[str, int] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def initialize(self) -> None:
        return None

    def insert_summary(self, record: SummaryRecord) -> SummaryRecord:
        created_at = record.created_at or utc_now()
        stored = replace(
            record,
            email_logs=(),
            metadata=replace(record.metadata, word_count=count_words(record.transcript)),
            created_at=created_at,
            updated_at=record.updated_at or created_at,
        )
        with self._lock:
            self._counter += 1
            self._records[stored.id] = stored
            self._sequence[stored.id] = self._counter
        return stored

    def get_summary(self, summary_id: str) -> SummaryRecord | None:
        return self._records.get(summary_id)

    def save_summary(self, record: SummaryRecord) -> SummaryRecord:
        with self._lock:
            existing = self._records.get(record.id)
            if existing is None:
                raise NotFoundError(f"Summary {record.id} does not exist")
            updated = replace(
                existing,
                prompt=record.prompt,
                edited_summary=record.edited_summary,
                summary_style=record.summary_style,
                language=record.language,
                metadata=replace(existing.metadata, word_count=count_words(existing.transcript)),
                updated_at=utc_now(),
            )
            self._records[record.id] = updated
        return updated

    def delete_summary(self, summary_id: str) -> bool:
        with self._lock:
            self._sequence.pop(summary_id, None)
            return self._records.pop(summary_id, None) is not None

    def append_email_log(self, summary_id: str, entry: EmailLogEntry) -> SummaryRecord | None:
        with self._lock:
            existing = self._records.get(summary_id)
            if existing is None:
                return None
            updated = replace(
                existing, email_logs=existing.email_logs + (entry,), updated_at=utc_now()
            )
            self._records[summary_id] = updated
        return updated

    def find_summaries(
        self, summary_filter: SummaryFilter, skip: int, limit: int
    ) -> list[SummaryRecord]:
        return self._matching(summary_filter)[skip : skip + limit]

    def count_summaries(self, summary_filter: SummaryFilter) -> int:
        return len(self._matching(summary_filter))

    def summary_stats(self, summary_filter: SummaryFilter) -> UserStats:
        records = self._matching(summary_filter)
        if not records:
            return UserStats()
        return UserStats(
            total_summaries=len(records),
            total_emails_sent=sum(len(record.email_logs) for record in records),
            average_word_count=round(
                sum(record.metadata.word_count for record in records) / len(records), 2
            ),
            total_processing_time=sum(record.metadata.processing_time for record in records),
        )

    def daily_stats(self, summary_filter: SummaryFilter) -> list[DailyStat]:
        buckets: dict[str, list[SummaryRecord]] = defaultdict(list)
        for record in self._matching(summary_filter):
            buckets[to_storage_timestamp(record.created_at)[:10]].append(record)
        return [
            DailyStat(
                date=day,
                count=len(records),
                avg_word_count=round(
                    sum(record.metadata.word_count for record in records) / len(records), 2
                ),
                avg_processing_time=round(
                    sum(record.metadata.processing_time for record in records) / len(records), 2
                ),
            )
            for day, records in sorted(buckets.items())
        ]

    def style_distribution(self, summary_filter: SummaryFilter) -> list[StyleCount]:
        counts: dict[str, int] = defaultdict(int)
        for record in self._matching(summary_filter):
            counts[record.summary_style] += 1
        return [StyleCount(style=style, count=count) for style, count in sorted(counts.items())]

    def _matching(self, summary_filter: SummaryFilter) -> list[SummaryRecord]:
        """Summary: Matching records ordered newest first, ties by insertion order."""

        with self._lock:
            snapshot = list(self._records.values())
            sequence = dict(self._sequence)
        records = [record for record in snapshot if summary_filter.matches(record)]
        return sorted(
            records,
            key=lambda record: (
                to_storage_timestamp(record.created_at),
                sequence[record.id],
            ),
            reverse=True,
        )
