"""Summary: Email transport interfaces and the summary dispatch client.

Importance: Encapsulates outbound delivery of summaries over SMTP.
Alternatives: Rely solely on a transactional email API with vendor lock-in.
"""

from __future__ import annotations

import html
import logging
import re
import smtplib
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Iterable

from minutemate.config import AppConfig
from minutemate.errors import (
    EmailServiceUnavailable,
    InvalidRecipient,
    MinuteMateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(address: str) -> bool:
    """Summary: Loosely check an address has a local@domain.tld shape.

    Importance: Catches typos before they reach the transport.
    Alternatives: Use a full RFC 5322 validator.
    """

    return bool(EMAIL_PATTERN.match(address))


def normalize_recipients(recipients: str | Iterable[str]) -> list[str]:
    """Summary: Normalize recipients into a de-duplicated list.

    Importance: Accepts both comma-separated strings and lists from clients.
    Alternatives: Require clients to send clean arrays only.
    """

    if isinstance(recipients, str):
        recipients = recipients.split(",")
    normalized: list[str] = []
    for address in recipients:
        cleaned = address.strip()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    return normalized


def render_summary_message(
    sender: str, recipients: list[str], subject: str, body: str
) -> EmailMessage:
    """Summary: Build a multipart summary email with plain text and HTML parts.

    Importance: Keeps line breaks readable in HTML mail clients.
    Alternatives: Send plain text only.
    """

    message = EmailMessage()
    message["From"] = sender
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=sender.split("@")[-1] if "@" in sender else None)
    message.set_content(f"{body}\n\n--\nSent with MinuteMate")
    escaped = html.escape(body).replace("\n", "<br>\n")
    message.add_alternative(
        "<html><body>"
        f"<h2>{html.escape(subject)}</h2>"
        f"<div>{escaped}</div>"
        "<hr><p><small>Sent with MinuteMate</small></p>"
        "</body></html>",
        subtype="html",
    )
    return message


class EmailTransport(ABC):
    """Summary: Abstract interface for outbound email delivery.

    Importance: Standardizes sending across SMTP and mocked transports.
    Alternatives: Use smtplib directly inside the dispatch client.
    """

    provider = "unknown"

    @abstractmethod
    def send(self, message: EmailMessage) -> str:
        """Summary: Submit a message and return its Message-ID.

        Importance: Drives every summary email.
        Alternatives: Return the raw transport response.
        """

    @abstractmethod
    def check_connection(self) -> None:
        """Summary: Verify reachability and credentials without sending mail."""

    def describe(self) -> dict[str, Any]:
        return {"provider": self.provider}


class SmtpTransport(EmailTransport):
    """Summary: Sends email through an SMTP relay with STARTTLS.

    Importance: Works with Gmail app passwords and most hosted relays.
    Alternatives: Use a provider HTTP API such as SendGrid.
    """

    provider = "smtp"

    def __init__(
        self, host: str, port: int, user: str, password: str, timeout: float = 30
    ) -> None:
        """Summary: Initialize the SMTP transport.

        Importance: Stores connection details for each submission.
        Alternatives: Keep a pooled SMTP connection open.
        """

        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._timeout = timeout

    def send(self, message: EmailMessage) -> str:
        """Summary: Deliver a message over a fresh SMTP session.

        Importance: Isolates failures per submission.
        Alternatives: Reuse one session for a bulk batch.
        """

        try:
            with self._session() as client:
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailServiceUnavailable(f"Email delivery failed: {exc}") from exc
        return str(message["Message-ID"])

    def check_connection(self) -> None:
        try:
            with self._session() as client:
                client.noop()
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailServiceUnavailable(f"Email connection failed: {exc}") from exc

    def describe(self) -> dict[str, Any]:
        return {"provider": self.provider, "host": self._host, "port": self._port}

    def _session(self) -> smtplib.SMTP:
        client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        try:
            client.starttls()
            client.login(self._user, self._password)
        except (smtplib.SMTPException, OSError):
            client.close()
            raise
        return client


class MockEmailTransport(EmailTransport):
    """Summary: Records outgoing messages instead of sending them.

    Importance: Enables offline demos and deterministic tests.
    Alternatives: Run a local SMTP debugging server.
    """

    provider = "mock"

    def __init__(self, fail_for: Iterable[str] = (), reachable: bool = True) -> None:
        self.sent: list[EmailMessage] = []
        self._fail_for = set(fail_for)
        self._reachable = reachable
        self._lock = threading.Lock()

    def send(self, message: EmailMessage) -> str:
        recipients = [address.strip() for address in str(message["To"]).split(",")]
        failing = [address for address in recipients if address in self._fail_for]
        if failing:
            raise EmailServiceUnavailable(f"Email delivery failed for {', '.join(failing)}")
        with self._lock:
            self.sent.append(message)
        return str(message["Message-ID"])

    def check_connection(self) -> None:
        if not self._reachable:
            raise EmailServiceUnavailable("Mock transport unreachable")


@dataclass(frozen=True)
class EmailSendResult:
    """Summary: Outcome of one successful submission."""

    message_id: str
    recipients: list[str]


@dataclass(frozen=True)
class BulkSendItem:
    """Summary: Per-recipient outcome in a bulk send.

    Importance: Reports partial delivery in-band.
    Alternatives: Raise on the first failing recipient.
    """

    email: str
    success: bool
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"email": self.email, "success": self.success}
        if self.message_id is not None:
            payload["messageId"] = self.message_id
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class EmailValidationReport:
    """Summary: Per-address validation outcome."""

    valid_emails: list[str]
    invalid_emails: list[str]
    validation_results: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.validation_results),
            "valid": len(self.valid_emails),
            "invalid": len(self.invalid_emails),
            "validEmails": self.valid_emails,
            "invalidEmails": self.invalid_emails,
            "validationResults": self.validation_results,
        }


def validate_emails(emails: list[str]) -> EmailValidationReport:
    """Summary: Classify each address as valid or invalid.

    Importance: Lets clients check recipients before sending.
    Alternatives: Validate only at send time.
    """

    results = [{"email": email, "valid": is_valid_email(email)} for email in emails]
    return EmailValidationReport(
        valid_emails=[item["email"] for item in results if item["valid"]],
        invalid_emails=[item["email"] for item in results if not item["valid"]],
        validation_results=results,
    )


class EmailDispatchClient:
    """Summary: Stateless sender of summary emails.

    Importance: Validates recipients and fans out bulk sends over a thread pool.
    Alternatives: Send synchronously inside the request handler.
    """

    def __init__(
        self, transport: EmailTransport | None, sender: str | None, max_workers: int = 4
    ) -> None:
        self._transport = transport
        self._sender = sender
        self._max_workers = max(1, max_workers)

    @property
    def configured(self) -> bool:
        return self._transport is not None and bool(self._sender)

    def send_one(self, recipients: list[str], body: str, subject: str) -> EmailSendResult:
        """Summary: Send one message addressed to every recipient.

        Importance: Rejects the whole request if any address is malformed.
        Alternatives: Drop malformed addresses silently.
        """

        if not recipients:
            raise ValidationError("At least one recipient email is required")
        invalid = [address for address in recipients if not is_valid_email(address)]
        if invalid:
            raise InvalidRecipient(invalid)
        transport = self._require_transport()
        message = render_summary_message(self._sender or "", recipients, subject, body)
        message_id = transport.send(message)
        logger.info("Sent summary email to %s recipients.", len(recipients))
        return EmailSendResult(message_id=message_id, recipients=list(recipients))

    def send_bulk(self, recipients: list[str], body: str, subject: str) -> list[BulkSendItem]:
        """Summary: Send an individual message to each recipient independently.

        Importance: One failing recipient never blocks the others.
        Alternatives: BCC everyone on a single message.
        """

        if not recipients:
            raise ValidationError("At least one recipient email is required")
        self._require_transport()
        results: list[BulkSendItem] = []
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(recipients))) as executor:
            futures = {
                executor.submit(self.send_one, [address], body, subject): address
                for address in recipients
            }
            for future in as_completed(futures):
                address = futures[future]
                try:
                    sent = future.result()
                except MinuteMateError as exc:
                    logger.warning("Bulk email to a recipient failed: %s", exc)
                    results.append(BulkSendItem(email=address, success=False, error=str(exc)))
                    continue
                results.append(
                    BulkSendItem(email=address, success=True, message_id=sent.message_id)
                )
        return results

    def test_connection(self) -> dict[str, Any]:
        """Summary: Check the transport without sending mail.

        Importance: Lets operators verify credentials from the API.
        Alternatives: Send a test message to a fixed inbox.
        """

        try:
            transport = self._require_transport()
            transport.check_connection()
        except EmailServiceUnavailable as exc:
            return {"success": False, "error": str(exc)}
        return {"success": True, "message": "Email service is configured and reachable"}

    def get_stats(self) -> dict[str, Any]:
        details = self._transport.describe() if self._transport else {"provider": None}
        return {"configured": self.configured, "from": self._sender, **details}

    def _require_transport(self) -> EmailTransport:
        if self._transport is None or not self._sender:
            raise EmailServiceUnavailable("Email configuration missing")
        return self._transport


def build_transport(config: AppConfig) -> EmailTransport | None:
    """Summary: Construct the configured transport, or None when unconfigured.

    Importance: Missing credentials degrade email endpoints instead of startup.
    Alternatives: Fail fast when SMTP settings are absent.
    """

    if config.email_provider == "mock":
        return MockEmailTransport()
    if config.email_provider != "smtp":
        return None
    if not (config.smtp_host and config.smtp_user and config.smtp_password):
        logger.warning("SMTP credentials missing; email endpoints will be unavailable.")
        return None
    return SmtpTransport(
        host=config.smtp_host,
        port=config.smtp_port,
        user=config.smtp_user,
        password=config.smtp_password,
        timeout=config.smtp_timeout_seconds,
    )


def resolve_sender(config: AppConfig) -> str | None:
    if config.email_provider == "mock":
        return config.email_from or "minutemate@localhost.test"
    return config.email_from or config.smtp_user
