from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def sha256_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()


def log_call(
    *,
    caller: str,
    provider: str,
    model: Optional[str],
    operation: str,
    prompt_hash: Optional[str] = None,
    duration_ms: Optional[int] = None,
    timeout_ms: Optional[int] = None,
    status: str = "ok",
    http_status: Optional[int] = None,
    error: Optional[str] = None,
    usage: Optional[Dict[str, Any]] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append a single JSON line describing one backend dispatch if tracing is enabled.

    Controlled by LLM_TRACE / LLM_LOG_PATH (see config/settings.py). Losing a
    trace line is preferable to failing an extraction, so write errors are
    logged and dropped.
    """
    from config.settings import get_settings

    # Tests monkeypatch env between calls; re-read settings each time
    get_settings.cache_clear()
    settings = get_settings()
    if not settings.llm_trace:
        return

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "caller": caller,
        "provider": provider,
        "model": model,
        "operation": operation,
        "prompt_hash": prompt_hash,
        "duration_ms": duration_ms,
        "timeout_ms": timeout_ms,
        "status": status,
        "http_status": http_status,
        "error": error,
        "usage": usage or {},
    }
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id
    if extras:
        # Shallow merge extras under a dedicated key to avoid collisions
        payload["extras"] = extras

    log_path = Path(settings.llm_log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        logging.warning(f"LLM trace write failed: {e}", extra={"step": "trace", "error": type(e).__name__})
