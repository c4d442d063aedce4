"""Summary: Tests for the summary lifecycle service.

Importance: Validates creation, editing, deletion, and email logging end to end.
Alternatives: Only test through the HTTP API.
"""

from __future__ import annotations

import pytest

from conftest import TRANSCRIPT, FailingProvider, RecordingProvider
from minutemate.ai import STYLE_PROMPTS, SummarizationClient
from minutemate.email import EmailDispatchClient, MockEmailTransport
from minutemate.errors import (
    EmailServiceUnavailable,
    InvalidRecipient,
    NotFoundError,
    ProviderUnavailable,
    ValidationError,
)
from minutemate.models import MAX_SUMMARY_CHARS
from minutemate.services import SummaryService
from minutemate.storage.base import SummaryStore
from minutemate.storage.filters import SummaryFilter
from minutemate.storage.memory_store import MemoryStore


def _service(
    store: SummaryStore | None = None,
    provider: RecordingProvider | None = None,
    transport: MockEmailTransport | None = None,
) -> SummaryService:
    return SummaryService(
        store=store or MemoryStore(),
        summarizer=SummarizationClient([provider or RecordingProvider()]),
        mailer=EmailDispatchClient(transport or MockEmailTransport(), "notes@example.com", 2),
    )


def test_create_persists_summary(store: SummaryStore) -> None:
    """Summary: Verify a generated summary is stored with metadata.

    Importance: Creation is the only entry point for records.
    Alternatives: Persist summaries client-side.
    """

    service = _service(store=store, provider=RecordingProvider(reply="Action: ship fix"))
    record = service.create(TRANSCRIPT, "List decisions", user_id="user-7")
    fetched = service.get(record.id)
    assert fetched.generated_summary == "Action: ship fix"
    assert fetched.user_id == "user-7"
    assert fetched.summary_style == "custom"
    assert fetched.language == "en"
    assert fetched.edited_summary is None
    assert fetched.metadata.word_count == len(TRANSCRIPT.split())
    assert fetched.metadata.ai_provider == "fake"


def test_create_assigns_user_id_when_missing() -> None:
    service = _service()
    first = service.create(TRANSCRIPT, "Summarize")
    second = service.create(TRANSCRIPT, "Summarize")
    assert first.user_id
    assert first.user_id != second.user_id
    assert first.id != second.id


def test_create_uses_style_template() -> None:
    provider = RecordingProvider()
    service = _service(provider=provider)
    record = service.create(TRANSCRIPT, "my own prompt", style="action-items")
    assert record.summary_style == "action-items"
    assert record.prompt == "my own prompt"
    assert STYLE_PROMPTS["action-items"] in provider.calls[0][1]


@pytest.mark.parametrize(
    ("transcript", "prompt", "style"),
    [
        ("too short to summarize", "Summarize", "custom"),
        ("word " * 10_001, "Summarize", "custom"),
        ("", "Summarize", "custom"),
        (TRANSCRIPT, "", "custom"),
        (TRANSCRIPT, "x" * 1_001, "custom"),
        (TRANSCRIPT, "Summarize", "poetry"),
    ],
)
def test_create_rejects_invalid_input(transcript: str, prompt: str, style: str) -> None:
    """Summary: Verify validation happens before any AI call or write.

    Importance: Invalid requests must leave no trace.
    Alternatives: Let the provider reject bad input.
    """

    store = MemoryStore()
    provider = RecordingProvider()
    service = _service(store=store, provider=provider)
    with pytest.raises(ValidationError):
        service.create(transcript, prompt, style=style)
    assert provider.calls == []
    assert store.count_summaries(SummaryFilter()) == 0


def test_create_persists_nothing_when_ai_fails() -> None:
    store = MemoryStore()
    service = _service(store=store, provider=FailingProvider("groq"))
    with pytest.raises(ProviderUnavailable):
        service.create(TRANSCRIPT, "Summarize")
    assert store.count_summaries(SummaryFilter()) == 0


def test_create_truncates_oversized_summary() -> None:
    service = _service(provider=RecordingProvider(reply="x" * (MAX_SUMMARY_CHARS + 50)))
    record = service.create(TRANSCRIPT, "Summarize")
    assert len(record.generated_summary) == MAX_SUMMARY_CHARS


def test_edit_keeps_generated_summary(store: SummaryStore) -> None:
    """Summary: Verify edits overwrite only the edited summary.

    Importance: Users can always compare against the AI output.
    Alternatives: Overwrite the generated text directly.
    """

    service = _service(store=store)
    record = service.create(TRANSCRIPT, "Summarize")
    service.edit(record.id, "First edit")
    edited = service.edit(record.id, "Second edit")
    assert edited.edited_summary == "Second edit"
    fetched = service.get(record.id)
    assert fetched.edited_summary == "Second edit"
    assert fetched.generated_summary == record.generated_summary
    assert fetched.effective_summary == "Second edit"


def test_edit_validation_and_not_found() -> None:
    service = _service()
    record = service.create(TRANSCRIPT, "Summarize")
    with pytest.raises(ValidationError):
        service.edit(record.id, "")
    with pytest.raises(ValidationError):
        service.edit(record.id, "x" * (MAX_SUMMARY_CHARS + 1))
    with pytest.raises(NotFoundError):
        service.edit("missing", "text")


def test_delete_then_get_raises_not_found(store: SummaryStore) -> None:
    service = _service(store=store)
    record = service.create(TRANSCRIPT, "Summarize")
    service.delete(record.id)
    with pytest.raises(NotFoundError):
        service.get(record.id)
    with pytest.raises(NotFoundError):
        service.delete(record.id)


def test_send_email_logs_recipients(store: SummaryStore) -> None:
    """Summary: Verify a successful send appends one log entry.

    Importance: The log must reflect exactly what was delivered.
    Alternatives: Log attempts regardless of outcome.
    """

    transport = MockEmailTransport()
    service = _service(store=store, transport=transport)
    record = service.create(TRANSCRIPT, "Summarize")
    service.edit(record.id, "Edited body")
    report = service.send_email(["a@test.com", "b@test.com"], summary_id=record.id)
    assert report.subject == "Meeting Summary"
    assert report.recipients == ["a@test.com", "b@test.com"]
    logs = service.list_email_logs(record.id)
    assert len(logs) == 1
    assert logs[0].recipients == ("a@test.com", "b@test.com")
    assert "Edited body" in transport.sent[0].get_body(("plain",)).get_content()


def test_send_email_rejects_invalid_recipient_before_sending() -> None:
    transport = MockEmailTransport()
    service = _service(transport=transport)
    record = service.create(TRANSCRIPT, "Summarize")
    with pytest.raises(InvalidRecipient) as excinfo:
        service.send_email(["a@test.com", "bad-email"], summary_id=record.id)
    assert excinfo.value.addresses == ["bad-email"]
    assert transport.sent == []
    assert service.list_email_logs(record.id) == []


def test_send_email_requires_recipients_and_body() -> None:
    service = _service()
    with pytest.raises(ValidationError):
        service.send_email([], summary_text="Hello")
    with pytest.raises(ValidationError):
        service.send_email(["a@test.com"])
    with pytest.raises(NotFoundError):
        service.send_email(["a@test.com"], summary_id="missing")


@pytest.mark.parametrize("subject", ["Notes\nBcc: x@evil.com", "Notes\r\nCc: x@evil.com"])
def test_multiline_subject_rejected_before_sending(subject: str) -> None:
    transport = MockEmailTransport()
    service = _service(transport=transport)
    with pytest.raises(ValidationError):
        service.send_email(["a@test.com"], subject=subject, summary_text="Hello")
    with pytest.raises(ValidationError):
        service.send_bulk_email(["a@test.com"], subject=subject, summary_text="Hello")
    assert transport.sent == []


def test_send_email_with_text_only_writes_no_log() -> None:
    transport = MockEmailTransport()
    service = _service(transport=transport)
    report = service.send_email("a@test.com, b@test.com", subject="Notes", summary_text="Hello")
    assert report.recipients == ["a@test.com", "b@test.com"]
    assert len(transport.sent) == 1
    assert transport.sent[0]["Subject"] == "Notes"


def test_failed_send_leaves_record_untouched() -> None:
    transport = MockEmailTransport(fail_for=["a@test.com"])
    service = _service(transport=transport)
    record = service.create(TRANSCRIPT, "Summarize")
    with pytest.raises(EmailServiceUnavailable):
        service.send_email(["a@test.com"], summary_id=record.id)
    assert service.list_email_logs(record.id) == []


def test_send_bulk_logs_only_successes(store: SummaryStore) -> None:
    """Summary: Verify bulk sends report partial failure and log per success.

    Importance: One bad recipient must not block or pollute the others.
    Alternatives: Send one message to all recipients.
    """

    transport = MockEmailTransport(fail_for=["b@test.com"])
    service = _service(store=store, transport=transport)
    record = service.create(TRANSCRIPT, "Summarize")
    report = service.send_bulk_email(
        ["a@test.com", "b@test.com", "c@test.com"], summary_id=record.id
    )
    assert (report.total, report.successful, report.failed) == (3, 2, 1)
    failed = [item for item in report.results if not item["success"]]
    assert failed[0]["email"] == "b@test.com"
    assert "error" in failed[0]
    logs = service.list_email_logs(record.id)
    assert len(logs) == 2
    assert sorted(entry.recipients[0] for entry in logs) == ["a@test.com", "c@test.com"]


def test_send_bulk_reports_malformed_addresses_in_band() -> None:
    transport = MockEmailTransport()
    service = _service(transport=transport)
    report = service.send_bulk_email(["a@test.com", "not-an-email"], summary_text="Hello")
    assert (report.total, report.successful, report.failed) == (2, 1, 1)
    assert len(transport.sent) == 1


def test_list_email_logs_unknown_summary() -> None:
    with pytest.raises(NotFoundError):
        _service().list_email_logs("missing")
