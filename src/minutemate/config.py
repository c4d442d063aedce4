"""Summary: Application configuration for MinuteMate.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for providers, email, and storage.

    Importance: Ensures all clients receive settings explicitly at construction.
    Alternatives: Read process environment inside each client.
    """

    db_path: str
    storage_backend: str
    groq_api_key: str | None
    groq_model: str
    groq_base_url: str
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str
    mock_ai: bool
    ai_timeout_seconds: float
    email_provider: str
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    email_from: str | None
    smtp_timeout_seconds: float
    bulk_email_workers: int
    api_host: str
    api_port: int
    api_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("MINUTEMATE_DB_PATH", defaults["db_path"]),
            storage_backend=os.getenv(
                "MINUTEMATE_STORAGE_BACKEND", defaults["storage_backend"]
            ),
            groq_api_key=os.getenv("GROQ_API_KEY") or defaults["groq_api_key"] or None,
            groq_model=os.getenv("GROQ_MODEL", defaults["groq_model"]),
            groq_base_url=os.getenv("GROQ_BASE_URL", defaults["groq_base_url"]),
            openai_api_key=os.getenv("OPENAI_API_KEY") or defaults["openai_api_key"] or None,
            openai_model=os.getenv("OPENAI_MODEL", defaults["openai_model"]),
            openai_base_url=os.getenv("OPENAI_BASE_URL", defaults["openai_base_url"]),
            mock_ai=parse_bool(os.getenv("MINUTEMATE_MOCK_AI", defaults["mock_ai"])),
            ai_timeout_seconds=float(
                os.getenv("MINUTEMATE_AI_TIMEOUT", defaults["ai_timeout_seconds"])
            ),
            email_provider=os.getenv("MINUTEMATE_EMAIL_PROVIDER", defaults["email_provider"]),
            smtp_host=os.getenv("SMTP_HOST") or defaults["smtp_host"] or None,
            smtp_port=int(os.getenv("SMTP_PORT", defaults["smtp_port"])),
            smtp_user=os.getenv("EMAIL_USER") or defaults["smtp_user"] or None,
            smtp_password=os.getenv("EMAIL_PASS") or defaults["smtp_password"] or None,
            email_from=os.getenv("EMAIL_FROM") or defaults["email_from"] or None,
            smtp_timeout_seconds=float(
                os.getenv("SMTP_TIMEOUT", defaults["smtp_timeout_seconds"])
            ),
            bulk_email_workers=int(
                os.getenv("MINUTEMATE_BULK_EMAIL_WORKERS", defaults["bulk_email_workers"])
            ),
            api_host=os.getenv("MINUTEMATE_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("MINUTEMATE_API_PORT", defaults["api_port"])),
            api_key=os.getenv("MINUTEMATE_API_KEY", defaults["api_key"]),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def parse_bool(value: str | bool) -> bool:
    """Summary: Interpret common truthy strings from env files."""

    if isinstance(value, bool):
        return value
    return value.strip().lower() in {"1", "true", "yes", "on"}
