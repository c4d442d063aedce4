"""Summary: Command-line interface for MinuteMate.

Importance: Provides a local-first entry point for summaries, history, and email.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import uvicorn

from minutemate.ai import STYLE_CATALOG
from minutemate.api import create_app
from minutemate.app import AppServices, build_services
from minutemate.config import AppConfig
from minutemate.errors import MinuteMateError
from minutemate.models import DEFAULT_LANGUAGE, DEFAULT_STYLE, SUMMARY_STYLES
from minutemate.services import DEFAULT_PAGE_SIZE, DEFAULT_PERIOD, DEFAULT_SUBJECT


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="MinuteMate CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    summarize = subparsers.add_parser("summarize", help="Summarize a transcript file")
    summarize.add_argument("transcript", type=str)
    summarize.add_argument("--prompt", type=str, required=True)
    summarize.add_argument("--style", type=str, default=DEFAULT_STYLE, choices=SUMMARY_STYLES)
    summarize.add_argument("--language", type=str, default=DEFAULT_LANGUAGE)
    summarize.add_argument("--provider", type=str, default=None)
    summarize.add_argument("--user", type=str, default=None)

    history = subparsers.add_parser("history", help="List a user's summaries")
    history.add_argument("user", type=str)
    history.add_argument("--page", type=int, default=1)
    history.add_argument("--limit", type=int, default=DEFAULT_PAGE_SIZE)
    history.add_argument("--search", type=str, default=None)

    stats = subparsers.add_parser("stats", help="Show usage totals for a user")
    stats.add_argument("user", type=str)

    analytics = subparsers.add_parser("analytics", help="Show activity over a period")
    analytics.add_argument("user", type=str)
    analytics.add_argument("--period", type=str, default=DEFAULT_PERIOD)

    send_email = subparsers.add_parser("send-email", help="Email a stored summary")
    send_email.add_argument("summary_id", type=str)
    send_email.add_argument("recipients", nargs="+", type=str)
    send_email.add_argument("--subject", type=str, default=DEFAULT_SUBJECT)

    subparsers.add_parser("providers", help="List configured AI providers")
    subparsers.add_parser("styles", help="List summary styles")
    subparsers.add_parser("email-test", help="Check the email transport")
    return parser


def dispatch(args: argparse.Namespace, services: AppServices) -> None:
    """Summary: Execute one parsed command against the services.

    Importance: Keeps command handling testable without process-level side effects.
    Alternatives: Inline the handling in run_cli.
    """

    if args.command == "summarize":
        transcript = Path(args.transcript).read_text(encoding="utf-8")
        record = services.summaries.create(
            transcript=transcript,
            prompt=args.prompt,
            style=args.style,
            language=args.language,
            provider=args.provider,
            user_id=args.user,
        )
        print(f"Summary {record.id} (user {record.user_id}, {record.metadata.ai_provider}):")
        print(record.generated_summary)
        return

    if args.command == "history":
        page = services.history.list_by_user(args.user, args.page, args.limit, args.search)
        for record in page.summaries:
            print(f"{record.id}: [{record.summary_style}] {record.prompt[:60]} ({record.created_at})")
        pagination = page.pagination
        print(
            f"Page {pagination.current_page} of {pagination.total_pages} "
            f"({pagination.total_items} summaries)"
        )
        return

    if args.command == "stats":
        for key, value in services.history.stats(args.user).to_dict().items():
            print(f"{key}: {value}")
        return

    if args.command == "analytics":
        analytics = services.history.analytics(args.user, args.period)
        print(f"Period {analytics.period}: {analytics.total_summaries} summaries")
        for day in analytics.daily_stats:
            print(f"{day.date}: {day.count} summaries, avg {day.avg_word_count} words")
        for item in analytics.style_distribution:
            print(f"{item.style}: {item.count}")
        return

    if args.command == "send-email":
        report = services.summaries.send_email(
            args.recipients, subject=args.subject, summary_id=args.summary_id
        )
        print(f"Sent {report.message_id} to {', '.join(report.recipients)}.")
        return

    if args.command == "providers":
        default = services.summarizer.default_provider()
        providers = services.summarizer.list_providers()
        if not providers:
            print("No AI providers configured.")
        for provider in providers:
            marker = " (default)" if provider.id == default else ""
            print(f"{provider.id}: {provider.name} - {provider.model}{marker}")
        return

    if args.command == "styles":
        for style in STYLE_CATALOG:
            print(f"{style['id']}: {style['name']} - {style['description']}")
        return

    if args.command == "email-test":
        result = services.mailer.test_connection()
        print(result.get("message") or result.get("error"))
        return


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives local workflows and starts the API server.
    Alternatives: Invoke services via the HTTP API only.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    services = build_services(config)

    if args.command == "serve":
        uvicorn.run(
            create_app(config, services),
            host=args.host or config.api_host,
            port=args.port or config.api_port,
        )
        return

    try:
        dispatch(args, services)
    except MinuteMateError as exc:
        parser.exit(1, f"{exc.title}: {exc}\n")


if __name__ == "__main__":
    run_cli()
