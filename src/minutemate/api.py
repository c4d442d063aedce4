"""Summary: FastAPI application for MinuteMate.

Importance: Exposes summarization, history, and email endpoints to UI clients.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from minutemate.ai import STYLE_CATALOG
from minutemate.app import AppServices, build_services
from minutemate.config import AppConfig
from minutemate.email import validate_emails
from minutemate.errors import MinuteMateError, NotFoundError, ServiceUnavailable, ValidationError
from minutemate.models import DEFAULT_LANGUAGE, DEFAULT_STYLE, SearchParams, isoformat
from minutemate.services import DEFAULT_PAGE_SIZE, DEFAULT_PERIOD, DEFAULT_SUBJECT

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Summary: Base request model accepting camelCase aliases or field names."""

    model_config = ConfigDict(populate_by_name=True)


class SummarizeRequest(CamelModel):
    """Summary: Request payload for summary generation.

    Importance: Keeps generation inputs explicit for API clients.
    Alternatives: Accept multipart uploads of transcript files.
    """

    transcript: str | None = None
    prompt: str | None = None
    style: str = DEFAULT_STYLE
    language: str = DEFAULT_LANGUAGE
    provider: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class EditRequest(CamelModel):
    """Summary: Request payload for editing a generated summary."""

    edited_summary: str | None = Field(default=None, alias="editedSummary")


class HistoryUpdateRequest(CamelModel):
    """Summary: Partial update payload for a stored summary.

    Importance: Omitted fields keep their stored values.
    Alternatives: Require a full replacement document.
    """

    edited_summary: str | None = Field(default=None, alias="editedSummary")
    prompt: str | None = None
    summary_style: str | None = Field(default=None, alias="summaryStyle")
    language: str | None = None


class EmailRequest(CamelModel):
    """Summary: Request payload for single and bulk summary emails.

    Importance: Allows sending stored summaries by id or ad hoc text.
    Alternatives: Only send stored summaries.
    """

    recipients: list[str] | str | None = None
    subject: str = DEFAULT_SUBJECT
    summary_id: str | None = Field(default=None, alias="summaryId")
    summary: str | None = None


class ValidateEmailsRequest(CamelModel):
    emails: list[str]


def _ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _error(status_code: int, title: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": title, "message": message},
    )


def status_for(exc: MinuteMateError) -> int:
    """Summary: Map a domain error to its HTTP status code.

    Importance: Keeps the error taxonomy and status codes in one place.
    Alternatives: Raise HTTPException inside services.
    """

    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ServiceUnavailable):
        return 503
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Summary: Render every failure with the standard error envelope.

    Importance: Clients parse a single error shape regardless of origin.
    Alternatives: Let FastAPI return its default detail payloads.
    """

    @app.exception_handler(MinuteMateError)
    async def domain_error_handler(request: Request, exc: MinuteMateError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code == 500:
            logger.exception("Unhandled domain error for %s %s", request.method, request.url.path)
            return _error(500, "Internal Server Error", "An unexpected error occurred")
        return _error(status_code, exc.title, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return _error(400, "Validation Error", details or "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        title = "Unauthorized" if exc.status_code == 401 else "Request Error"
        if exc.status_code == 404:
            title = "Not Found"
        return _error(exc.status_code, title, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
        return _error(500, "Internal Server Error", "An unexpected error occurred")


def create_app(config: AppConfig, services: AppServices | None = None) -> FastAPI:
    """Summary: Create a FastAPI app wired to MinuteMate services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="MinuteMate API", version="0.1.0")
    services = services or build_services(config)
    app.state.services = services
    register_error_handlers(app)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    guarded = [Depends(require_api_key)]

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local and cloud deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok"}

    @app.post("/api/summarize", dependencies=guarded)
    def summarize(payload: SummarizeRequest) -> dict[str, Any]:
        """Summary: Generate and store a summary for a transcript."""

        record = services.summaries.create(
            transcript=payload.transcript or "",
            prompt=payload.prompt or "",
            style=payload.style,
            language=payload.language,
            provider=payload.provider,
            user_id=payload.user_id,
        )
        return _ok(
            {
                "id": record.id,
                "summary": record.generated_summary,
                "processingTime": record.metadata.processing_time,
                "provider": record.metadata.ai_provider,
                "userId": record.user_id,
                "createdAt": isoformat(record.created_at),
            }
        )

    @app.get("/api/summarize/providers/list", dependencies=guarded)
    def list_providers() -> dict[str, Any]:
        return _ok(
            {
                "providers": [item.to_dict() for item in services.summarizer.list_providers()],
                "default": services.summarizer.default_provider(),
            }
        )

    @app.get("/api/summarize/styles/list", dependencies=guarded)
    def list_styles() -> dict[str, Any]:
        return _ok(
            [
                {key: item[key] for key in ("id", "name", "description")}
                for item in STYLE_CATALOG
            ]
        )

    @app.put("/api/summarize/{summary_id}", dependencies=guarded)
    def edit_summary(summary_id: str, payload: EditRequest) -> dict[str, Any]:
        record = services.summaries.edit(summary_id, payload.edited_summary)
        view = record.to_dict(include_transcript=False)
        return _ok(
            {"id": record.id, "editedSummary": record.edited_summary, "updatedAt": view["updatedAt"]}
        )

    @app.get("/api/summarize/{summary_id}", dependencies=guarded)
    def get_summary(summary_id: str) -> dict[str, Any]:
        return _ok(services.summaries.get(summary_id).to_dict())

    @app.delete("/api/summarize/{summary_id}", dependencies=guarded)
    def delete_summary(summary_id: str) -> dict[str, Any]:
        services.summaries.delete(summary_id)
        return {"success": True, "message": "Summary deleted successfully"}

    @app.get("/api/history/user/{user_id}", dependencies=guarded)
    def user_history(
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: str | None = None,
    ) -> dict[str, Any]:
        """Summary: List a user's summaries, newest first."""

        return _ok(services.history.list_by_user(user_id, page, limit, search).to_dict())

    @app.get("/api/history/user/{user_id}/search", dependencies=guarded)
    def search_history(
        user_id: str,
        q: str | None = None,
        style: str | None = None,
        language: str | None = None,
        date_from: str | None = Query(default=None, alias="dateFrom"),
        date_to: str | None = Query(default=None, alias="dateTo"),
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Summary: Search a user's summaries with conjunctive filters."""

        params = SearchParams(
            q=q, style=style, language=language, date_from=date_from, date_to=date_to
        )
        return _ok(services.history.search(user_id, params, page, limit).to_dict())

    @app.get("/api/history/user/{user_id}/stats", dependencies=guarded)
    def user_stats(user_id: str) -> dict[str, Any]:
        return _ok(services.history.stats(user_id).to_dict())

    @app.get("/api/history/user/{user_id}/analytics", dependencies=guarded)
    def user_analytics(user_id: str, period: str = DEFAULT_PERIOD) -> dict[str, Any]:
        return _ok(services.history.analytics(user_id, period).to_dict())

    @app.get("/api/history/summary/{summary_id}", dependencies=guarded)
    def history_get(summary_id: str) -> dict[str, Any]:
        return _ok(services.history.get_by_id(summary_id).to_dict())

    @app.put("/api/history/summary/{summary_id}", dependencies=guarded)
    def history_update(summary_id: str, payload: HistoryUpdateRequest) -> dict[str, Any]:
        record = services.history.update(
            summary_id,
            edited_summary=payload.edited_summary,
            prompt=payload.prompt,
            summary_style=payload.summary_style,
            language=payload.language,
        )
        view = record.to_dict(include_transcript=False)
        return _ok(
            {
                key: view[key]
                for key in ("id", "editedSummary", "prompt", "summaryStyle", "language", "updatedAt")
            }
        )

    @app.delete("/api/history/summary/{summary_id}", dependencies=guarded)
    def history_delete(summary_id: str) -> dict[str, Any]:
        services.history.delete(summary_id)
        return {"success": True, "message": "Summary deleted successfully"}

    @app.post("/api/email/send", dependencies=guarded)
    def send_email(payload: EmailRequest) -> dict[str, Any]:
        """Summary: Send a summary to all recipients in one message."""

        report = services.summaries.send_email(
            payload.recipients or [],
            subject=payload.subject,
            summary_id=payload.summary_id,
            summary_text=payload.summary,
        )
        return _ok(report.to_dict())

    @app.post("/api/email/send-bulk", dependencies=guarded)
    def send_bulk_email(payload: EmailRequest) -> dict[str, Any]:
        """Summary: Send a summary to each recipient individually."""

        report = services.summaries.send_bulk_email(
            payload.recipients or [],
            subject=payload.subject,
            summary_id=payload.summary_id,
            summary_text=payload.summary,
        )
        return _ok(report.to_dict())

    @app.post("/api/email/validate", dependencies=guarded)
    def validate_email_addresses(payload: ValidateEmailsRequest) -> dict[str, Any]:
        return _ok(validate_emails(payload.emails).to_dict())

    @app.get("/api/email/test", dependencies=guarded)
    def test_email() -> Any:
        result = services.mailer.test_connection()
        if not result["success"]:
            return _error(503, "Email Configuration Error", result["error"])
        return {"success": True, "message": result["message"]}

    @app.get("/api/email/status", dependencies=guarded)
    def email_status() -> dict[str, Any]:
        return _ok(services.mailer.get_stats())

    @app.get("/api/email/logs/{summary_id}", dependencies=guarded)
    def email_logs(summary_id: str) -> dict[str, Any]:
        logs = services.summaries.list_email_logs(summary_id)
        return _ok(
            {
                "summaryId": summary_id,
                "emailLogs": [entry.to_dict() for entry in logs],
                "totalEmails": len(logs),
            }
        )

    return app
