"""Summary: Shared fixtures for MinuteMate tests.

Importance: Keeps configuration and store setup consistent across test modules.
Alternatives: Repeat AppConfig construction in every test file.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import pytest

from minutemate.ai import AiProvider
from minutemate.config import AppConfig
from minutemate.errors import ProviderUnavailable
from minutemate.models import SummaryMetadata, SummaryRecord
from minutemate.storage.base import SummaryStore
from minutemate.storage.memory_store import MemoryStore
from minutemate.storage.sqlite_store import SqliteStore

TRANSCRIPT = (
    "Alice opened the meeting and reviewed the quarterly roadmap. Bob agreed to ship the "
    "billing fix by Friday while Carol will draft the launch announcement."
)


class RecordingProvider(AiProvider):
    """Summary: Fake provider that records prompts and returns fixed text."""

    def __init__(
        self, provider_id: str = "fake", reply: str = "Summary text", available: bool = True
    ) -> None:
        self.provider_id = provider_id
        self.name = provider_id.title()
        self.model = f"{provider_id}-model"
        self.reply = reply
        self.calls: list[tuple[str, str]] = []
        self._available = available

    @property
    def available(self) -> bool:
        return self._available

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        return self.reply


class FailingProvider(RecordingProvider):
    """Summary: Fake provider that fails like an unreachable upstream."""

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        raise ProviderUnavailable(self.provider_id, "upstream timeout")


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AppConfig]:
    """Summary: Build isolated AppConfig instances with overrides.

    Importance: Ensures tests never read the developer's environment.
    Alternatives: Load AppConfig from environment variables.
    """

    def _make(**overrides: Any) -> AppConfig:
        values: dict[str, Any] = {
            "db_path": str(tmp_path / "test.db"),
            "storage_backend": "sqlite",
            "groq_api_key": None,
            "groq_model": "llama3-8b-8192",
            "groq_base_url": "https://api.groq.com/openai/v1",
            "openai_api_key": None,
            "openai_model": "gpt-3.5-turbo",
            "openai_base_url": "https://api.openai.com/v1",
            "mock_ai": True,
            "ai_timeout_seconds": 5.0,
            "email_provider": "mock",
            "smtp_host": None,
            "smtp_port": 587,
            "smtp_user": None,
            "smtp_password": None,
            "email_from": "notes@example.com",
            "smtp_timeout_seconds": 5.0,
            "bulk_email_workers": 2,
            "api_host": "127.0.0.1",
            "api_port": 5000,
            "api_key": "",
        }
        values.update(overrides)
        return AppConfig(**values)

    return _make


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> SummaryStore:
    """Summary: Provide each store implementation behind the same contract."""

    if request.param == "sqlite":
        instance: SummaryStore = SqliteStore(str(tmp_path / "store.db"))
    else:
        instance = MemoryStore()
    instance.initialize()
    return instance


def seed_record(
    store: SummaryStore,
    user_id: str = "user-1",
    created_at: datetime | None = None,
    **fields: Any,
) -> SummaryRecord:
    """Summary: Insert a record directly, bypassing the AI client."""

    values: dict[str, Any] = {
        "id": uuid.uuid4().hex,
        "user_id": user_id,
        "transcript": TRANSCRIPT,
        "prompt": "Summarize the meeting",
        "generated_summary": "Roadmap reviewed, billing fix due Friday.",
        "metadata": SummaryMetadata(processing_time=120, ai_provider="fake"),
        "created_at": created_at,
    }
    values.update(fields)
    return store.insert_summary(SummaryRecord(**values))
