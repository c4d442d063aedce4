"""Summary: Core application services for MinuteMate.

Importance: Orchestrates summary generation, editing, email delivery, and history queries.
Alternatives: Put the workflow logic directly in the HTTP handlers.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone

from minutemate.ai import SummarizationClient
from minutemate.email import EmailDispatchClient, normalize_recipients, is_valid_email
from minutemate.errors import InvalidRecipient, NotFoundError, ValidationError
from minutemate.models import (
    DEFAULT_LANGUAGE,
    DEFAULT_STYLE,
    MAX_PROMPT_CHARS,
    MAX_SUMMARY_CHARS,
    SUMMARY_STYLES,
    Analytics,
    BulkEmailReport,
    EmailDispatchReport,
    EmailLogEntry,
    HistoryPage,
    Pagination,
    SearchParams,
    SummaryMetadata,
    SummaryRecord,
    UserStats,
    utc_now,
)
from minutemate.storage.base import SummaryStore
from minutemate.storage.filters import SummaryFilter

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Meeting Summary"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"


def _validate_prompt(prompt: str) -> None:
    if len(prompt) > MAX_PROMPT_CHARS:
        raise ValidationError(f"Prompt too long. Maximum {MAX_PROMPT_CHARS:,} characters allowed.")


def _validate_style(style: str) -> None:
    if style not in SUMMARY_STYLES:
        raise ValidationError(
            f"Invalid summary style: {style}. Expected one of {', '.join(SUMMARY_STYLES)}."
        )


def _validate_summary_text(text: str | None) -> str:
    if text is None or not text.strip():
        raise ValidationError("Edited summary is required")
    if len(text) > MAX_SUMMARY_CHARS:
        raise ValidationError(
            f"Summary too long. Maximum {MAX_SUMMARY_CHARS:,} characters allowed."
        )
    return text


def _validate_subject(subject: str | None) -> str:
    subject = subject or DEFAULT_SUBJECT
    if "\r" in subject or "\n" in subject:
        raise ValidationError("Subject must be a single line")
    return subject


def _validate_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("Page must be 1 or greater")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")


def parse_date_bound(value: str | None, end_of_day: bool = False) -> datetime | None:
    """Summary: Parse an ISO date or datetime used as a search bound.

    Importance: A date-only upper bound must include the whole calendar day.
    Alternatives: Require clients to send full timestamps.
    """

    if not value:
        return None
    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc
    if end_of_day and len(raw) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SummaryService:
    """Summary: Owns the lifecycle of a summary record.

    Importance: Generates, edits, emails, and deletes summaries with consistent validation.
    Alternatives: Split generation and email into separate services sharing the store.
    """

    store: SummaryStore
    summarizer: SummarizationClient
    mailer: EmailDispatchClient

    def create(
        self,
        transcript: str,
        prompt: str,
        style: str = DEFAULT_STYLE,
        language: str = DEFAULT_LANGUAGE,
        provider: str | None = None,
        user_id: str | None = None,
    ) -> SummaryRecord:
        """Summary: Generate a summary for a transcript and persist it.

        Importance: The only path that creates records; nothing is stored if the AI call fails.
        Alternatives: Persist a pending record first and fill it asynchronously.
        """

        if not transcript or not transcript.strip():
            raise ValidationError("Transcript is required")
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")
        _validate_prompt(prompt)
        style = style or DEFAULT_STYLE
        _validate_style(style)
        if style == DEFAULT_STYLE:
            result = self.summarizer.generate(transcript, prompt, provider)
        else:
            result = self.summarizer.generate_with_style(
                transcript, style, custom_prompt=prompt, provider=provider
            )
        summary_text = result.summary_text
        if len(summary_text) > MAX_SUMMARY_CHARS:
            logger.warning(
                "Generated summary exceeded %s characters and was truncated.", MAX_SUMMARY_CHARS
            )
            summary_text = summary_text[:MAX_SUMMARY_CHARS]
        record = self.store.insert_summary(
            SummaryRecord(
                id=uuid.uuid4().hex,
                user_id=user_id or str(uuid.uuid4()),
                transcript=transcript,
                prompt=prompt,
                generated_summary=summary_text,
                summary_style=style,
                language=language or DEFAULT_LANGUAGE,
                metadata=SummaryMetadata(
                    processing_time=result.processing_time_ms,
                    ai_provider=result.provider_used,
                ),
            )
        )
        logger.info("Created summary %s with %s.", record.id, result.provider_used)
        return record

    def edit(self, summary_id: str, edited_summary: str | None) -> SummaryRecord:
        """Summary: Overwrite the edited summary of a record.

        Importance: Keeps the AI output intact while users refine the text.
        Alternatives: Version every edit as a new record.
        """

        text = _validate_summary_text(edited_summary)
        record = self.get(summary_id)
        updated = self.store.save_summary(replace(record, edited_summary=text))
        logger.info("Edited summary %s.", summary_id)
        return updated

    def get(self, summary_id: str) -> SummaryRecord:
        record = self.store.get_summary(summary_id)
        if record is None:
            raise NotFoundError("Summary with the provided ID does not exist")
        return record

    def delete(self, summary_id: str) -> None:
        if not self.store.delete_summary(summary_id):
            raise NotFoundError("Summary with the provided ID does not exist")
        logger.info("Deleted summary %s.", summary_id)

    def send_email(
        self,
        recipients: list[str] | str,
        subject: str | None = None,
        summary_id: str | None = None,
        summary_text: str | None = None,
    ) -> EmailDispatchReport:
        """Summary: Email a summary to every recipient in one message.

        Importance: Records a single log entry only after the transport accepts the message.
        Alternatives: Log the attempt before sending and mark failures afterwards.
        """

        addresses = normalize_recipients(recipients)
        if not addresses:
            raise ValidationError("At least one recipient email is required")
        invalid = [address for address in addresses if not is_valid_email(address)]
        if invalid:
            raise InvalidRecipient(invalid)
        subject = _validate_subject(subject)
        record, body = self._resolve_body(summary_id, summary_text)
        sent = self.mailer.send_one(addresses, body, subject)
        sent_at = utc_now()
        if record is not None:
            self.store.append_email_log(
                record.id, EmailLogEntry(recipients=tuple(addresses), subject=subject, sent_at=sent_at)
            )
        return EmailDispatchReport(
            message_id=sent.message_id, recipients=sent.recipients, subject=subject, sent_at=sent_at
        )

    def send_bulk_email(
        self,
        recipients: list[str] | str,
        subject: str | None = None,
        summary_id: str | None = None,
        summary_text: str | None = None,
    ) -> BulkEmailReport:
        """Summary: Email a summary to each recipient individually.

        Importance: Partial failures are reported per recipient and only successes are logged.
        Alternatives: Abort the batch on the first failure.
        """

        addresses = normalize_recipients(recipients)
        if not addresses:
            raise ValidationError("At least one recipient email is required")
        subject = _validate_subject(subject)
        record, body = self._resolve_body(summary_id, summary_text)
        items = self.mailer.send_bulk(addresses, body, subject)
        if record is not None:
            for item in items:
                if item.success:
                    self.store.append_email_log(
                        record.id,
                        EmailLogEntry(recipients=(item.email,), subject=subject, sent_at=utc_now()),
                    )
        successful = sum(1 for item in items if item.success)
        logger.info("Bulk email finished: %s sent, %s failed.", successful, len(items) - successful)
        return BulkEmailReport(
            total=len(items),
            successful=successful,
            failed=len(items) - successful,
            results=[item.to_dict() for item in items],
            sent_at=utc_now(),
        )

    def list_email_logs(self, summary_id: str) -> list[EmailLogEntry]:
        return list(self.get(summary_id).email_logs)

    def _resolve_body(
        self, summary_id: str | None, summary_text: str | None
    ) -> tuple[SummaryRecord | None, str]:
        if summary_id:
            record = self.get(summary_id)
            return record, record.effective_summary
        if summary_text and summary_text.strip():
            return None, summary_text
        raise ValidationError("Either summary text or summaryId is required")


@dataclass(frozen=True)
class HistoryService:
    """Summary: Read-mostly queries over a user's summaries.

    Importance: Backs history listing, search, stats, and analytics.
    Alternatives: Expose raw store queries to the API layer.
    """

    store: SummaryStore

    def list_by_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: str | None = None,
    ) -> HistoryPage:
        """Summary: Return one page of a user's summaries, newest first.

        Importance: Powers the history view with optional free-text filtering.
        Alternatives: Return the full history and paginate client-side.
        """

        _validate_paging(page, limit)
        summary_filter = SummaryFilter().for_user(user_id).matching_text(search)
        return self._page(summary_filter, page, limit)

    def search(
        self,
        user_id: str,
        params: SearchParams,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        """Summary: Filter a user's summaries by text, style, language, and date range.

        Importance: All filters combine conjunctively and echo back to the client.
        Alternatives: Offer separate endpoints per filter.
        """

        _validate_paging(page, limit)
        summary_filter = (
            SummaryFilter()
            .for_user(user_id)
            .matching_text(params.q)
            .with_style(params.style)
            .with_language(params.language)
            .created_between(
                parse_date_bound(params.date_from),
                parse_date_bound(params.date_to, end_of_day=True),
            )
        )
        result = self._page(summary_filter, page, limit)
        return replace(result, search_params=params)

    def stats(self, user_id: str) -> UserStats:
        return self.store.summary_stats(SummaryFilter().for_user(user_id))

    def analytics(self, user_id: str, period: str | None = DEFAULT_PERIOD) -> Analytics:
        """Summary: Summarize activity over a trailing window.

        Importance: Unknown periods fall back to thirty days rather than failing.
        Alternatives: Reject unsupported periods with a validation error.
        """

        if period not in ANALYTICS_PERIODS:
            period = DEFAULT_PERIOD
        end_date = utc_now()
        start_date = end_date - timedelta(days=ANALYTICS_PERIODS[period])
        summary_filter = SummaryFilter().for_user(user_id).created_between(start_date, end_date)
        return Analytics(
            period=period,
            start_date=start_date,
            end_date=end_date,
            daily_stats=self.store.daily_stats(summary_filter),
            style_distribution=self.store.style_distribution(summary_filter),
            total_summaries=self.store.count_summaries(summary_filter),
        )

    def get_by_id(self, summary_id: str) -> SummaryRecord:
        record = self.store.get_summary(summary_id)
        if record is None:
            raise NotFoundError("Summary with the provided ID does not exist")
        return record

    def update(
        self,
        summary_id: str,
        edited_summary: str | None = None,
        prompt: str | None = None,
        summary_style: str | None = None,
        language: str | None = None,
    ) -> SummaryRecord:
        """Summary: Apply a partial update to the mutable fields of a record.

        Importance: Fields left as None keep their stored values.
        Alternatives: Require the full record on every update.
        """

        changes: dict[str, str] = {}
        if edited_summary is not None:
            changes["edited_summary"] = _validate_summary_text(edited_summary)
        if prompt is not None:
            if not prompt.strip():
                raise ValidationError("Prompt is required")
            _validate_prompt(prompt)
            changes["prompt"] = prompt
        if summary_style is not None:
            _validate_style(summary_style)
            changes["summary_style"] = summary_style
        if language is not None:
            if not language.strip():
                raise ValidationError("Language is required")
            changes["language"] = language
        record = self.get_by_id(summary_id)
        updated = self.store.save_summary(replace(record, **changes))
        logger.info("Updated summary %s fields: %s.", summary_id, ", ".join(sorted(changes)) or "none")
        return updated

    def delete(self, summary_id: str) -> None:
        if not self.store.delete_summary(summary_id):
            raise NotFoundError("Summary with the provided ID does not exist")
        logger.info("Deleted summary %s.", summary_id)

    def _page(self, summary_filter: SummaryFilter, page: int, limit: int) -> HistoryPage:
        total = self.store.count_summaries(summary_filter)
        summaries = self.store.find_summaries(summary_filter, (page - 1) * limit, limit)
        return HistoryPage(summaries=summaries, pagination=Pagination.build(page, limit, total))
