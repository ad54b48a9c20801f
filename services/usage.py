from __future__ import annotations

from typing import Any, Dict, Optional

from models.usage_record import UsageRecord


# Field name variants per canonical slot, in lookup order
_INPUT_KEYS = ("input_tokens", "inputTokens", "prompt_tokens", "promptTokens", "promptTokenCount")
_OUTPUT_KEYS = ("output_tokens", "outputTokens", "completion_tokens", "completionTokens", "candidatesTokenCount")
_TOTAL_KEYS = ("total_tokens", "totalTokens", "totalTokenCount")
_REQUEST_ID_KEYS = ("request_id", "requestId", "_request_id", "id", "responseId")


def _as_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _first(block: Dict[str, Any], keys) -> Optional[int]:
    for key in keys:
        count = _as_count(block.get(key))
        if count is not None:
            return count
    return None


def _usage_block(backend_id: str, envelope: Dict[str, Any]) -> Dict[str, Any]:
    # Completion/responses style: {"usage": {...}}; Gemini: {"usageMetadata": {...}}
    keys = ("usage", "usageMetadata", "usage_metadata")
    if backend_id.startswith("gemini"):
        keys = ("usageMetadata", "usage_metadata", "usage")
    for key in keys:
        block = envelope.get(key)
        if isinstance(block, dict):
            return block
    return {}


def normalize_usage(backend_id: str, envelope: Any) -> UsageRecord:
    """Canonical usage record from any known response envelope. Never raises.

    Missing values stay None (unknown); a reported zero stays zero. The total is
    derived from input + output only when the backend omitted it but reported both.
    """
    if not isinstance(envelope, dict):
        return UsageRecord()
    block = _usage_block(backend_id or "", envelope)
    input_tokens = _first(block, _INPUT_KEYS)
    output_tokens = _first(block, _OUTPUT_KEYS)
    total_tokens = _first(block, _TOTAL_KEYS)
    if total_tokens is None and input_tokens is not None and output_tokens is not None:
        total_tokens = input_tokens + output_tokens

    request_id = None
    for key in _REQUEST_ID_KEYS:
        value = envelope.get(key)
        if isinstance(value, str) and value:
            request_id = value
            break

    return UsageRecord(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        request_id=request_id,
    )
