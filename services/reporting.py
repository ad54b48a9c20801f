from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


def usage_for_run(run_id: str, log_path: Optional[str] = None) -> Dict[str, Dict[str, int]]:
    """Aggregate backend usage from the JSONL call trace for the given run_id.

    Returns dict like { 'openai_responses': {'calls': N, 'tokens': T, 'errors': E}, 'gemini': {...} }
    """
    from config.settings import get_settings

    result: Dict[str, Dict[str, int]] = {}
    path = Path(log_path or get_settings().llm_log_path)
    if not path.exists():
        return result
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            provider = rec.get("provider") or "unknown"
            bucket = result.setdefault(provider, {"calls": 0, "tokens": 0, "errors": 0})
            bucket["calls"] += 1
            if rec.get("status") != "ok":
                bucket["errors"] += 1
            total_tokens = (rec.get("usage") or {}).get("total_tokens")
            if isinstance(total_tokens, int):
                bucket["tokens"] += total_tokens
    return result


def print_summary(result: Dict[str, Any], output_path: Optional[Path] = None) -> None:
    """Print summary of one extraction run."""
    data = result.get("data") or {}
    profile = data.get("profile") or {}
    usage = result.get("usage") or {}

    print("\n" + "="*60)
    print("PROFILE EXTRACTION - SUMMARY")
    print("="*60)
    print(f"Success: {result.get('success')}")
    if not result.get("success"):
        print(f"Transient: {result.get('transient')}")
        print(f"Message: {result.get('userMessage', 'N/A')}")
    print(f"Provider: {result.get('provider', 'N/A')}  Model: {result.get('model', 'N/A')}")
    if profile:
        print(f"Name: {profile.get('name') or 'N/A'}")
        print(f"Headline: {profile.get('headline') or 'N/A'}")
        print(f"Experience entries: {len(data.get('experience') or [])}")
        print(f"Education entries: {len(data.get('education') or [])}")
        print(f"Skills: {len(data.get('skills') or [])}")
    if usage:
        print(
            f"Tokens: input={usage.get('inputTokens')} output={usage.get('outputTokens')} "
            f"total={usage.get('totalTokens')}"
        )
    # Per-provider trace totals for the current RUN_ID if tracing is enabled
    from config.settings import get_settings

    settings = get_settings()
    run_id = os.getenv("RUN_ID")
    if run_id and settings.llm_trace:
        per_provider = usage_for_run(run_id)
        if per_provider:
            print("Backend calls:")
            for provider, stats in per_provider.items():
                print(
                    f"  {provider}: calls={stats.get('calls', 0)}, errors={stats.get('errors', 0)}, "
                    f"tokens={stats.get('tokens', 0)}"
                )
    if output_path:
        print(f"Output File: {output_path}")
    print("="*60)
