"""Summary: Composable filters over summary records.

Importance: One filter contract renders to SQL for SQLite and evaluates in memory for fakes.
Alternatives: Build WHERE clauses with ad hoc string concatenation in each query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from minutemate.models import SummaryRecord


def to_storage_timestamp(value: datetime) -> str:
    """Summary: Normalize a datetime into a sortable UTC ISO string.

    Importance: Lexicographic order of stored timestamps must match time order.
    Alternatives: Store epoch integers.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def fold_case(value: str | None) -> str | None:
    """Summary: Unicode-aware lowercasing, registered as a SQLite function.

    Importance: SQLite's LOWER only folds ASCII, so search would miss accented text.
    Alternatives: Build SQLite with the ICU extension.
    """

    return value.lower() if value is not None else None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Predicate(ABC):
    """Summary: A single condition on a summary record.

    Importance: Keeps SQL rendering and in-memory matching side by side.
    Alternatives: Maintain separate query builders per store.
    """

    @abstractmethod
    def to_sql(self) -> tuple[str, list[Any]]:
        """Summary: Render a parameterised SQL fragment."""

    @abstractmethod
    def matches(self, record: SummaryRecord) -> bool:
        """Summary: Evaluate the condition against a record in memory."""


@dataclass(frozen=True)
class FieldEquals(Predicate):
    """Summary: Exact match on a scalar record field."""

    column: str
    attribute: str
    value: str

    def to_sql(self) -> tuple[str, list[Any]]:
        return f"{self.column} = ?", [self.value]

    def matches(self, record: SummaryRecord) -> bool:
        return getattr(record, self.attribute) == self.value


@dataclass(frozen=True)
class TextContains(Predicate):
    """Summary: Case-insensitive substring match on prompt or either summary.

    Importance: Backs both the history search box and the advanced search query.
    Alternatives: Use SQLite FTS5 virtual tables.
    """

    text: str

    def to_sql(self) -> tuple[str, list[Any]]:
        pattern = f"%{_escape_like(self.text.lower())}%"
        clause = (
            "(fold_case(prompt) LIKE ? ESCAPE '\\' "
            "OR fold_case(generated_summary) LIKE ? ESCAPE '\\' "
            "OR fold_case(COALESCE(edited_summary, '')) LIKE ? ESCAPE '\\')"
        )
        return clause, [pattern, pattern, pattern]

    def matches(self, record: SummaryRecord) -> bool:
        needle = self.text.lower()
        fields = (record.prompt, record.generated_summary, record.edited_summary or "")
        return any(needle in value.lower() for value in fields)


@dataclass(frozen=True)
class CreatedBetween(Predicate):
    """Summary: Inclusive creation-time window; either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def to_sql(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if self.start is not None:
            clauses.append("created_at >= ?")
            params.append(to_storage_timestamp(self.start))
        if self.end is not None:
            clauses.append("created_at <= ?")
            params.append(to_storage_timestamp(self.end))
        return " AND ".join(clauses) or "1 = 1", params

    def matches(self, record: SummaryRecord) -> bool:
        if record.created_at is None:
            return False
        created = to_storage_timestamp(record.created_at)
        if self.start is not None and created < to_storage_timestamp(self.start):
            return False
        if self.end is not None and created > to_storage_timestamp(self.end):
            return False
        return True


@dataclass(frozen=True)
class SummaryFilter:
    """Summary: Immutable conjunction of predicates.

    Importance: Lets the history service compose search filters step by step.
    Alternatives: Accept a dict of optional filters in every store method.
    """

    predicates: tuple[Predicate, ...] = ()

    def where(self, predicate: Predicate) -> "SummaryFilter":
        return SummaryFilter(self.predicates + (predicate,))

    def for_user(self, user_id: str) -> "SummaryFilter":
        return self.where(FieldEquals("user_id", "user_id", user_id))

    def matching_text(self, text: str | None) -> "SummaryFilter":
        if not text:
            return self
        return self.where(TextContains(text))

    def with_style(self, style: str | None) -> "SummaryFilter":
        if not style:
            return self
        return self.where(FieldEquals("summary_style", "summary_style", style))

    def with_language(self, language: str | None) -> "SummaryFilter":
        if not language:
            return self
        return self.where(FieldEquals("language", "language", language))

    def created_between(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> "SummaryFilter":
        if start is None and end is None:
            return self
        return self.where(CreatedBetween(start, end))

    def to_sql(self) -> tuple[str, list[Any]]:
        """Summary: Render the conjunction as a WHERE body and its parameters."""

        if not self.predicates:
            return "1 = 1", []
        clauses: list[str] = []
        params: list[Any] = []
        for predicate in self.predicates:
            clause, values = predicate.to_sql()
            clauses.append(f"({clause})")
            params.extend(values)
        return " AND ".join(clauses), params

    def matches(self, record: SummaryRecord) -> bool:
        return all(predicate.matches(record) for predicate in self.predicates)
