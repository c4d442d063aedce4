"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from minutemate.ai import AiProvider, AiProviderFactory, SummarizationClient
from minutemate.config import AppConfig
from minutemate.email import EmailDispatchClient, EmailTransport, build_transport, resolve_sender
from minutemate.services import HistoryService, SummaryService
from minutemate.storage.base import SummaryStore
from minutemate.storage.memory_store import MemoryStore
from minutemate.storage.sqlite_store import SqliteStore

_UNSET = object()


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for MinuteMate.

    Importance: Simplifies passing dependencies to the API and CLI.
    Alternatives: Use a dependency injection container.
    """

    summaries: SummaryService
    history: HistoryService
    summarizer: SummarizationClient
    mailer: EmailDispatchClient
    store: SummaryStore


def build_store(config: AppConfig) -> SummaryStore:
    """Summary: Build and initialize the configured record store.

    Importance: Lets demos run without a database file.
    Alternatives: Always use SQLite.
    """

    if config.storage_backend == "memory":
        store: SummaryStore = MemoryStore()
    elif config.storage_backend == "sqlite":
        store = SqliteStore(config.db_path)
    else:
        raise ValueError(f"Unsupported storage backend: {config.storage_backend}")
    store.initialize()
    return store


def build_services(
    config: AppConfig,
    providers: list[AiProvider] | None = None,
    transport: EmailTransport | None | object = _UNSET,
    store: SummaryStore | None = None,
) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path, with test doubles injectable.
    Alternatives: Instantiate services directly within each entrypoint.
    """

    if store is None:
        store = build_store(config)
    if providers is None:
        providers = AiProviderFactory(config).build()
    if transport is _UNSET:
        transport = build_transport(config)
    summarizer = SummarizationClient(providers)
    mailer = EmailDispatchClient(
        transport,  # type: ignore[arg-type]
        resolve_sender(config),
        max_workers=config.bulk_email_workers,
    )
    return AppServices(
        summaries=SummaryService(store=store, summarizer=summarizer, mailer=mailer),
        history=HistoryService(store=store),
        summarizer=summarizer,
        mailer=mailer,
        store=store,
    )
