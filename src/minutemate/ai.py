"""Summary: AI provider abstraction and the summarization client.

Importance: Centralizes LLM access, provider selection, and transcript validation.
Alternatives: Call provider SDKs directly in each service.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from minutemate.config import AppConfig
from minutemate.errors import (
    NoProviderConfigured,
    ProviderUnavailable,
    TranscriptTooLong,
    TranscriptTooShort,
    ValidationError,
)
from minutemate.models import MAX_TRANSCRIPT_CHARS, MIN_TRANSCRIPT_WORDS, count_words

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert meeting summarizer. Create clear, concise, and well-structured "
    "summaries based on the provided transcript and prompt."
)
TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 2000
DEFAULT_CUSTOM_PROMPT = (
    "Create a comprehensive summary of the meeting covering main topics, decisions, "
    "and key takeaways."
)

STYLE_CATALOG: list[dict[str, str]] = [
    {
        "id": "executive",
        "name": "Executive Summary",
        "description": "High-level summary with key decisions and business impact",
        "prompt": (
            "Create an executive summary with key points, decisions made, and next steps. "
            "Focus on high-level insights and business impact."
        ),
    },
    {
        "id": "action-items",
        "name": "Action Items",
        "description": "Extract all action items, assignments, and deadlines",
        "prompt": (
            "Extract all action items, assignments, and deadlines from the meeting. "
            "Organize by person responsible and priority."
        ),
    },
    {
        "id": "technical",
        "name": "Technical Notes",
        "description": "Technical discussions, specifications, and implementation details",
        "prompt": (
            "Provide a technical summary focusing on technical discussions, specifications, "
            "architecture decisions, and implementation details."
        ),
    },
    {
        "id": "custom",
        "name": "Custom",
        "description": "Use your own custom prompt",
        "prompt": "",
    },
]

STYLE_PROMPTS = {item["id"]: item["prompt"] for item in STYLE_CATALOG if item["prompt"]}


class AiProvider(ABC):
    """Summary: Abstract interface for chat-style text generation.

    Importance: Allows switching between hosted LLMs without refactors.
    Alternatives: Use a single vendor SDK and accept lock-in risk.
    """

    provider_id: str
    name: str
    model: str

    @property
    def available(self) -> bool:
        """Summary: Whether the provider has the credentials it needs."""

        return True

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Summary: Generate a response for a system and user message pair.

        Importance: Standardizes AI outputs for downstream services.
        Alternatives: Return provider-specific response objects directly.
        """


@dataclass(frozen=True)
class SummaryResult:
    """Summary: Captures AI output and timing metadata.

    Importance: Normalizes downstream handling of AI responses.
    Alternatives: Use dicts or provider response objects.
    """

    summary_text: str
    processing_time_ms: int
    provider_used: str


@dataclass(frozen=True)
class ProviderInfo:
    """Summary: Public description of a configured provider."""

    id: str
    name: str
    model: str
    available: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "model": self.model, "available": self.available}


class MockAiProvider(AiProvider):
    """Summary: Deterministic AI provider for local testing.

    Importance: Enables offline workflows and repeatable tests.
    Alternatives: Use a small local LLM for all development tasks.
    """

    provider_id = "mock"
    name = "Mock"
    model = "mock-summarizer"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Summary: Return a canned summary echoing the request.

        Importance: Allows core flows without external dependencies.
        Alternatives: Use fixture-based responses loaded from files.
        """

        return f"[mock summary] {user_prompt[:240]}"


class ChatCompletionProvider(AiProvider):
    """Summary: Provider for OpenAI-compatible chat completion endpoints.

    Importance: Serves both Groq and OpenAI since they share one wire format.
    Alternatives: Maintain one class per vendor.
    """

    def __init__(
        self,
        provider_id: str,
        name: str,
        base_url: str,
        api_key: str | None,
        model: str,
        timeout: float = 60,
    ) -> None:
        """Summary: Initialize the chat completion provider.

        Importance: Stores connection details for repeated requests.
        Alternatives: Lazily resolve URLs per request.
        """

        self.provider_id = provider_id
        self.name = name
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Summary: Generate text using the chat completions API.

        Importance: Produces the summary text for a transcript and prompt.
        Alternatives: Use the responses API or a vendor SDK.
        """

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "top_p": 1,
            "stream": False,
        }
        request = urllib.request.Request(
            url=f"{self._base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise ProviderUnavailable(self.provider_id, _http_error_message(exc)) from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            raise ProviderUnavailable(self.provider_id, str(getattr(exc, "reason", exc))) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise ProviderUnavailable(self.provider_id, f"Connection failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailable(self.provider_id, "Response was not valid JSON") from exc
        try:
            return raw["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderUnavailable(self.provider_id, "Malformed completion response") from exc


def _http_error_message(exc: urllib.error.HTTPError) -> str:
    """Summary: Pull the upstream error message out of an HTTP error body."""

    try:
        body = json.loads(exc.read().decode("utf-8"))
        return body["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {exc.code}: {exc.reason}"


def build_user_prompt(transcript: str, prompt: str) -> str:
    return (
        f"Transcript: {transcript}\n\nPrompt: {prompt}\n\n"
        "Please provide a summary based on the above transcript and prompt."
    )


def validate_transcript(transcript: str) -> tuple[int, int]:
    """Summary: Check transcript size bounds before any network call.

    Importance: Rejects oversized or trivial transcripts without spending tokens.
    Alternatives: Let the provider reject requests that exceed its context.
    """

    char_count = len(transcript)
    word_count = count_words(transcript)
    if char_count > MAX_TRANSCRIPT_CHARS:
        raise TranscriptTooLong(
            f"Transcript too long. Maximum {MAX_TRANSCRIPT_CHARS:,} characters allowed."
        )
    if word_count < MIN_TRANSCRIPT_WORDS:
        raise TranscriptTooShort("Transcript too short. Please provide more content.")
    return word_count, char_count


class SummarizationClient:
    """Summary: Stateless summarizer over an ordered set of providers.

    Importance: Resolves a provider, validates input, and times each call.
    Alternatives: Hardcode a single provider in the lifecycle service.
    """

    def __init__(self, providers: list[AiProvider]) -> None:
        """Summary: Register providers in preference order.

        Importance: The first available provider is the default.
        Alternatives: Read preference order from configuration at call time.
        """

        self._providers = {provider.provider_id: provider for provider in providers}

    def list_providers(self) -> list[ProviderInfo]:
        return [
            ProviderInfo(provider.provider_id, provider.name, provider.model, True)
            for provider in self._providers.values()
            if provider.available
        ]

    def default_provider(self) -> str | None:
        available = self.list_providers()
        return available[0].id if available else None

    def generate(
        self, transcript: str, prompt: str, provider: str | None = None
    ) -> SummaryResult:
        """Summary: Summarize a transcript with a free-form prompt.

        Importance: Single entry point for every AI summary in the system.
        Alternatives: Expose provider calls directly to services.
        """

        if not transcript or not transcript.strip():
            raise ValidationError("Transcript is required")
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")
        validate_transcript(transcript)
        selected = self._resolve(provider)
        started = time.perf_counter()
        text = selected.complete(SYSTEM_PROMPT, build_user_prompt(transcript, prompt))
        processing_time = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Generated summary with %s in %s ms.", selected.provider_id, processing_time
        )
        return SummaryResult(
            summary_text=text,
            processing_time_ms=processing_time,
            provider_used=selected.provider_id,
        )

    def generate_with_style(
        self,
        transcript: str,
        style: str,
        custom_prompt: str | None = None,
        provider: str | None = None,
    ) -> SummaryResult:
        """Summary: Summarize a transcript using a named style template.

        Importance: Gives users consistent summary shapes without prompt writing.
        Alternatives: Require a custom prompt on every request.
        """

        prompt = STYLE_PROMPTS.get(style)
        if prompt is None:
            prompt = custom_prompt if custom_prompt and custom_prompt.strip() else DEFAULT_CUSTOM_PROMPT
        return self.generate(transcript, prompt, provider)

    def _resolve(self, provider: str | None) -> AiProvider:
        """Summary: Pick the provider for a call.

        Importance: Distinguishes unknown ids from known but unconfigured ones.
        Alternatives: Silently fall back to the default provider.
        """

        if provider:
            selected = self._providers.get(provider)
            if selected is None:
                raise ValidationError(f"Unsupported AI provider: {provider}")
            if not selected.available:
                raise NoProviderConfigured(f"{selected.name} API key not configured")
            return selected
        for candidate in self._providers.values():
            if candidate.available:
                return candidate
        raise NoProviderConfigured("No AI API key configured")


@dataclass(frozen=True)
class AiProviderFactory:
    """Summary: Factory for building providers from configuration.

    Importance: Keeps provider selection logic centralized.
    Alternatives: Wire providers manually at the application entrypoint.
    """

    config: AppConfig

    def build(self) -> list[AiProvider]:
        """Summary: Construct providers in preference order.

        Importance: Ensures consistent provider selection across services.
        Alternatives: Use dependency injection frameworks.
        """

        providers: list[AiProvider] = []
        if self.config.mock_ai:
            providers.append(MockAiProvider())
        providers.append(
            ChatCompletionProvider(
                provider_id="groq",
                name="Groq",
                base_url=self.config.groq_base_url,
                api_key=self.config.groq_api_key,
                model=self.config.groq_model,
                timeout=self.config.ai_timeout_seconds,
            )
        )
        providers.append(
            ChatCompletionProvider(
                provider_id="openai",
                name="OpenAI",
                base_url=self.config.openai_base_url,
                api_key=self.config.openai_api_key,
                model=self.config.openai_model,
                timeout=self.config.ai_timeout_seconds,
            )
        )
        return providers
