"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class UploadSettings:
    """
    Limits for uploaded spreadsheets.
    """

    max_bytes: int = 50_000_000


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class GoogleSheetsSettings:
    """
    Google Sheets CSV export connector settings.

    ``fetch_timeout_seconds`` bounds the whole fetch including retries.
    """

    export_url_template: str = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"
    fetch_timeout_seconds: float = 60.0


@dataclass(frozen=True)
class LLMSettings:
    """
    Summary generation settings. ``adapter`` is ``openai`` or ``mock``.
    """

    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    max_tokens: int = 2048
    temperature: float = 0.3
    timeout_seconds: float = 30.0
    api_key: str | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class ViolationWriteSettings:
    """
    Violation batch insert behaviour.
    """

    timeout_seconds: float = 5.0
    max_attempts: int = 3
    backoff_seconds: float = 0.5


@dataclass(frozen=True)
class BusinessRuleSettings:
    """
    Optional JSON file seeding the rule store at startup.
    """

    rules_file: str | None = None


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload settings from environment variables.
    """

    return UploadSettings(
        max_bytes=max(1, _get_int_env("UPLOAD_MAX_BYTES", 50_000_000)),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_google_sheets_settings() -> GoogleSheetsSettings:
    """
    Return Google Sheets connector settings from environment variables.
    """

    return GoogleSheetsSettings(
        export_url_template=_get_str_env(
            "GOOGLE_SHEETS_EXPORT_URL_TEMPLATE",
            "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv",
        ),
        fetch_timeout_seconds=max(1.0, _get_float_env("GOOGLE_SHEETS_FETCH_TIMEOUT_SECONDS", 60.0)),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return summary LLM settings from environment variables.
    """

    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 2048)),
        temperature=max(0.0, _get_float_env("LLM_TEMPERATURE", 0.3)),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 30.0)),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
    )


@lru_cache(maxsize=1)
def get_violation_write_settings() -> ViolationWriteSettings:
    """
    Return violation writer settings from environment variables.
    """

    return ViolationWriteSettings(
        timeout_seconds=max(0.1, _get_float_env("VIOLATION_WRITE_TIMEOUT_SECONDS", 5.0)),
        max_attempts=max(1, _get_int_env("VIOLATION_WRITE_MAX_ATTEMPTS", 3)),
        backoff_seconds=max(0.0, _get_float_env("VIOLATION_WRITE_BACKOFF_SECONDS", 0.5)),
    )


@lru_cache(maxsize=1)
def get_business_rule_settings() -> BusinessRuleSettings:
    """
    Return business rule store settings from environment variables.
    """

    return BusinessRuleSettings(
        rules_file=_get_optional_str_env("BUSINESS_RULES_FILE"),
    )
