"""Summary: Error taxonomy for MinuteMate.

Importance: Lets services raise domain errors that the API maps to status codes.
Alternatives: Raise HTTPException directly from services.
"""

from __future__ import annotations


class MinuteMateError(Exception):
    """Summary: Base class for all MinuteMate domain errors.

    Importance: Allows a single except clause at the request boundary.
    Alternatives: Reuse built-in ValueError and RuntimeError.
    """

    title = "Internal Server Error"


class ValidationError(MinuteMateError):
    """Summary: Raised for missing or malformed input.

    Importance: Signals a client error detected before any side effect.
    Alternatives: Return error tuples from every service call.
    """

    title = "Validation Error"


class TranscriptTooLong(ValidationError):
    """Summary: Raised when a transcript exceeds the character ceiling."""

    title = "Invalid transcript"


class TranscriptTooShort(ValidationError):
    """Summary: Raised when a transcript has too few words to summarize."""

    title = "Invalid transcript"


class InvalidRecipient(ValidationError):
    """Summary: Raised when an email address fails the format check.

    Importance: Stops malformed addresses before they reach the transport.
    Alternatives: Let the SMTP server reject the address.
    """

    title = "Invalid Email Addresses"

    def __init__(self, addresses: list[str]) -> None:
        self.addresses = addresses
        super().__init__(f"Invalid email addresses: {', '.join(addresses)}")


class NotFoundError(MinuteMateError):
    """Summary: Raised when a summary id does not exist.

    Importance: Maps unknown ids to 404 responses.
    Alternatives: Return None and let callers check.
    """

    title = "Summary not found"


class ServiceUnavailable(MinuteMateError):
    """Summary: Raised when an external collaborator is missing or unreachable.

    Importance: Degrades single operations instead of crashing the process.
    Alternatives: Fail application startup when credentials are absent.
    """

    title = "Service Unavailable"


class NoProviderConfigured(ServiceUnavailable):
    """Summary: Raised when no AI provider has credentials."""

    title = "AI Service Unavailable"


class ProviderUnavailable(ServiceUnavailable):
    """Summary: Raised when an AI provider call fails.

    Importance: Keeps the failing provider id attached to the upstream message.
    Alternatives: Re-raise the raw transport exception.
    """

    title = "AI Service Unavailable"

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} API Error: {message}")


class EmailServiceUnavailable(ServiceUnavailable):
    """Summary: Raised when the email transport is missing or unreachable."""

    title = "Email Service Unavailable"
