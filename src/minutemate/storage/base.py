"""Summary: Storage interface for summary records.

Importance: Lets services run against SQLite in production and an in-memory fake in tests.
Alternatives: Bind services directly to the SQLite implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from minutemate.models import DailyStat, EmailLogEntry, StyleCount, SummaryRecord, UserStats
from minutemate.storage.filters import SummaryFilter


class SummaryStore(ABC):
    """Summary: Abstract persistence contract for summary records.

    Importance: Defines exactly what the lifecycle and history services need.
    Alternatives: Use a generic repository with arbitrary queries.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Summary: Prepare the backing storage."""

    @abstractmethod
    def insert_summary(self, record: SummaryRecord) -> SummaryRecord:
        """Summary: Persist a new record and return it with derived fields set.

        Importance: Assigns timestamps and the transcript word count on create.
        Alternatives: Let callers compute derived fields.
        """

    @abstractmethod
    def get_summary(self, summary_id: str) -> SummaryRecord | None:
        """Summary: Fetch a record by id, including its email log."""

    @abstractmethod
    def save_summary(self, record: SummaryRecord) -> SummaryRecord:
        """Summary: Overwrite the mutable fields of an existing record.

        Importance: Recomputes the word count and bumps updated_at on every save.
        Alternatives: Issue one UPDATE per changed field.
        """

    @abstractmethod
    def delete_summary(self, summary_id: str) -> bool:
        """Summary: Hard delete a record; return whether it existed."""

    @abstractmethod
    def append_email_log(self, summary_id: str, entry: EmailLogEntry) -> SummaryRecord | None:
        """Summary: Append one email log entry and return the updated record."""

    @abstractmethod
    def find_summaries(
        self, summary_filter: SummaryFilter, skip: int, limit: int
    ) -> list[SummaryRecord]:
        """Summary: Return matching records, newest first."""

    @abstractmethod
    def count_summaries(self, summary_filter: SummaryFilter) -> int:
        """Summary: Count matching records."""

    @abstractmethod
    def summary_stats(self, summary_filter: SummaryFilter) -> UserStats:
        """Summary: Aggregate totals over matching records."""

    @abstractmethod
    def daily_stats(self, summary_filter: SummaryFilter) -> list[DailyStat]:
        """Summary: Group matching records by UTC calendar day, ascending."""

    @abstractmethod
    def style_distribution(self, summary_filter: SummaryFilter) -> list[StyleCount]:
        """Summary: Count matching records per summary style."""
