"""Summary: Domain model dataclasses for MinuteMate.

Importance: Defines the summary record and the query result shapes shared across services.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SUMMARY_STYLES = ("executive", "action-items", "technical", "custom")
DEFAULT_STYLE = "custom"
DEFAULT_LANGUAGE = "en"
EMAIL_STATUSES = ("sent", "failed")

MAX_TRANSCRIPT_CHARS = 50_000
MIN_TRANSCRIPT_WORDS = 10
MAX_PROMPT_CHARS = 1_000
MAX_SUMMARY_CHARS = 10_000


def utc_now() -> datetime:
    """Summary: Return the current time as an aware UTC datetime.

    Importance: Keeps stored timestamps comparable across stores.
    Alternatives: Store naive local times.
    """

    return datetime.now(timezone.utc)


def count_words(text: str) -> int:
    """Summary: Count maximal runs of non-whitespace characters.

    Importance: Single definition used for validation and stored word counts.
    Alternatives: Use a tokenizer such as tiktoken.
    """

    return len(text.split())


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class EmailLogEntry:
    """Summary: One completed email send attempt tied to a summary.

    Importance: Provides an append-only audit of where a summary was sent.
    Alternatives: Keep email history only in transport logs.
    """

    recipients: tuple[str, ...]
    subject: str
    sent_at: datetime
    status: str = "sent"

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipients": list(self.recipients),
            "subject": self.subject,
            "sentAt": isoformat(self.sent_at),
            "status": self.status,
        }


@dataclass(frozen=True)
class SummaryMetadata:
    """Summary: Derived facts recorded alongside a summary.

    Importance: Feeds stats and analytics without re-reading transcripts.
    Alternatives: Recompute metrics at query time.
    """

    word_count: int = 0
    processing_time: int = 0
    ai_provider: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordCount": self.word_count,
            "processingTime": self.processing_time,
            "aiProvider": self.ai_provider,
        }


@dataclass(frozen=True)
class SummaryRecord:
    """Summary: A persisted summarization request and its result.

    Importance: The sole entity behind generation, editing, email, and history.
    Alternatives: Split requests and results into separate tables.
    """

    id: str
    user_id: str
    transcript: str
    prompt: str
    generated_summary: str
    edited_summary: str | None = None
    summary_style: str = DEFAULT_STYLE
    language: str = DEFAULT_LANGUAGE
    email_logs: tuple[EmailLogEntry, ...] = ()
    metadata: SummaryMetadata = field(default_factory=SummaryMetadata)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_summary(self) -> str:
        """Summary: Return the text shown and emailed for this record.

        Importance: Keeps the edited-over-generated rule in one place.
        Alternatives: Repeat the fallback at every call site.
        """

        return self.edited_summary or self.generated_summary

    def to_dict(self, include_transcript: bool = True) -> dict[str, Any]:
        """Summary: Serialize the record using the API's camelCase field names.

        Importance: History listings omit the transcript to keep payloads small.
        Alternatives: Declare a Pydantic response model per endpoint.
        """

        payload: dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "prompt": self.prompt,
            "generatedSummary": self.generated_summary,
            "editedSummary": self.edited_summary,
            "summaryStyle": self.summary_style,
            "language": self.language,
            "emailLogs": [entry.to_dict() for entry in self.email_logs],
            "metadata": self.metadata.to_dict(),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_transcript:
            payload["transcript"] = self.transcript
        return payload


@dataclass(frozen=True)
class Pagination:
    """Summary: Page bookkeeping for history listings.

    Importance: Gives clients enough information to render pagers.
    Alternatives: Use cursor-based pagination.
    """

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @staticmethod
    def build(page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return Pagination(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


@dataclass(frozen=True)
class SearchParams:
    """Summary: Conjunctive filters for history search.

    Importance: Carries raw query inputs so they can be echoed back to clients.
    Alternatives: Pass loose keyword arguments through every layer.
    """

    q: str | None = None
    style: str | None = None
    language: str | None = None
    date_from: str | None = None
    date_to: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.q,
            "style": self.style,
            "language": self.language,
            "dateFrom": self.date_from,
            "dateTo": self.date_to,
        }


@dataclass(frozen=True)
class HistoryPage:
    """Summary: One page of history results."""

    summaries: list[SummaryRecord]
    pagination: Pagination
    search_params: SearchParams | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "summaries": [record.to_dict(include_transcript=False) for record in self.summaries],
            "pagination": self.pagination.to_dict(),
        }
        if self.search_params is not None:
            payload["searchParams"] = self.search_params.to_dict()
        return payload


@dataclass(frozen=True)
class UserStats:
    """Summary: Aggregate totals over a user's summaries.

    Importance: Powers the dashboard header without paging through history.
    Alternatives: Compute totals client-side from the full history.
    """

    total_summaries: int = 0
    total_emails_sent: int = 0
    average_word_count: float = 0
    total_processing_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSummaries": self.total_summaries,
            "totalEmailsSent": self.total_emails_sent,
            "averageWordCount": self.average_word_count,
            "totalProcessingTime": self.total_processing_time,
        }


@dataclass(frozen=True)
class DailyStat:
    """Summary: Per-calendar-day activity bucket."""

    date: str
    count: int
    avg_word_count: float
    avg_processing_time: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "count": self.count,
            "avgWordCount": self.avg_word_count,
            "avgProcessingTime": self.avg_processing_time,
        }


@dataclass(frozen=True)
class StyleCount:
    style: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"style": self.style, "count": self.count}


@dataclass(frozen=True)
class Analytics:
    """Summary: Windowed activity view for a user.

    Importance: Shows usage trends and style mix over a recent period.
    Alternatives: Export raw records to an external BI tool.
    """

    period: str
    start_date: datetime
    end_date: datetime
    daily_stats: list[DailyStat]
    style_distribution: list[StyleCount]
    total_summaries: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "startDate": isoformat(self.start_date),
            "endDate": isoformat(self.end_date),
            "dailyStats": [item.to_dict() for item in self.daily_stats],
            "styleDistribution": [item.to_dict() for item in self.style_distribution],
            "totalSummaries": self.total_summaries,
        }


@dataclass(frozen=True)
class EmailDispatchReport:
    """Summary: Outcome of a single summary email send."""

    message_id: str
    recipients: list[str]
    subject: str
    sent_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageId": self.message_id,
            "recipients": self.recipients,
            "subject": self.subject,
            "sentAt": isoformat(self.sent_at),
        }


@dataclass(frozen=True)
class BulkEmailReport:
    """Summary: Aggregated outcome of a per-recipient bulk send.

    Importance: Makes partial delivery a reportable result instead of an error.
    Alternatives: Fail the whole request when any recipient fails.
    """

    total: int
    successful: int
    failed: int
    results: list[dict[str, Any]]
    sent_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": self.results,
            "sentAt": isoformat(self.sent_at),
        }
