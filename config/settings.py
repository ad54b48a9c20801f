from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _ms_schedule(value: str | None, default: tuple[int, ...]) -> tuple[int, ...]:
    """Parse '90000,150000' into (90000, 150000); empty or junk entries are dropped."""
    if not value:
        return default
    parts = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if chunk.isdigit() and int(chunk) > 0:
            parts.append(int(chunk))
    return tuple(parts) or default


@dataclass(frozen=True)
class Settings:
    # Backend credentials
    openai_api_key: str | None
    gemini_api_key: str | None

    # Timeout schedules (milliseconds)
    primary_timeouts_ms: tuple[int, ...]
    race_primary_timeouts_ms: tuple[int, ...]
    secondary_timeouts_ms: tuple[int, ...]

    # Input limits
    max_html_kb: int
    max_input_tokens: int
    max_output_tokens: int

    # Dispatch control
    min_request_spacing_ms: int
    race_enabled: bool

    log_level: str
    run_env: str

    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Logging/tracing
    llm_trace: bool = False
    llm_log_path: str = "logs/llm_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY"),
        primary_timeouts_ms=_ms_schedule(os.getenv("EXTRACTION_TIMEOUTS_MS"), (90000, 150000)),
        race_primary_timeouts_ms=_ms_schedule(os.getenv("RACE_PRIMARY_TIMEOUTS_MS"), (150000,)),
        secondary_timeouts_ms=_ms_schedule(os.getenv("SECONDARY_TIMEOUTS_MS"), (120000,)),
        max_html_kb=int(os.getenv("MAX_HTML_KB", "4000")),
        max_input_tokens=int(os.getenv("MAX_INPUT_TOKENS", "50000")),
        max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "12000")),
        min_request_spacing_ms=int(os.getenv("MIN_REQUEST_SPACING_MS", "1000")),
        race_enabled=_as_bool(os.getenv("RACE_ENABLED"), default=True),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        run_env=os.getenv("RUN_ENV", "local"),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
        llm_trace=_as_bool(os.getenv("LLM_TRACE")),
        llm_log_path=os.getenv("LLM_LOG_PATH", "logs/llm_calls.jsonl"),
    )
