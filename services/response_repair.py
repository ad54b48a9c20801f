from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from models.extracted_profile import ExtractedProfile


REASON_OK = "ok"
REASON_EMPTY = "empty"
REASON_PARSE_ERROR = "parse_error"
REASON_SCHEMA_GATE = "schema_gate"

_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?([\s\S]*?)\n?\s*```\s*$")


@dataclass(frozen=True)
class RepairOutcome:
    profile: Optional[ExtractedProfile]
    valid: bool
    reason: str = REASON_OK
    repaired: bool = False


def strip_code_fence(text: str) -> str:
    m = _FENCE.match(text)
    if m:
        return m.group(1)
    return text


def slice_braces(text: str) -> str:
    """Keep the span from the first '{' to the last '}' (or to the end if truncated)."""
    start = text.find("{")
    if start == -1:
        return text
    end = text.rfind("}")
    if end < start:
        return text[start:]
    return text[start : end + 1]


def close_braces(text: str) -> str:
    """Append one '}' per unmatched '{'.

    Heuristic for output cut off by the token cap: it does not look inside
    strings and does not close brackets, so it only rescues documents truncated
    right after a complete value.
    """
    missing = text.count("{") - text.count("}")
    if missing <= 0:
        return text
    return text + "}" * missing


def parse_json_lenient(raw_text: str) -> tuple[Optional[Any], bool]:
    """Returns (parsed, repaired). parsed is None when even the brace repair fails.

    On a failed parse the braces are closed on the text running to the end of
    the output (truncation point) first, then on the first-'{'..last-'}' span.
    """
    unfenced = strip_code_fence(raw_text.strip())
    text = slice_braces(unfenced)
    try:
        return json.loads(text), False
    except json.JSONDecodeError:
        pass
    start = unfenced.find("{")
    tail = unfenced[start:].rstrip() if start != -1 else unfenced
    for candidate in (tail, text):
        patched = close_braces(candidate)
        if patched == candidate:
            continue
        try:
            return json.loads(patched), True
        except json.JSONDecodeError:
            continue
    return None, False


def repair_and_validate(raw_text: Optional[str]) -> RepairOutcome:
    """Single entry point from raw backend text to an accepted profile (or not)."""
    if not raw_text or not raw_text.strip():
        return RepairOutcome(profile=None, valid=False, reason=REASON_EMPTY)

    parsed, repaired = parse_json_lenient(raw_text)
    if not isinstance(parsed, dict):
        logging.warning(
            f"Backend output is not a JSON object (length={len(raw_text)})",
            extra={"step": REASON_PARSE_ERROR, "status": "invalid"},
        )
        return RepairOutcome(profile=None, valid=False, reason=REASON_PARSE_ERROR)

    if repaired:
        logging.info("Recovered truncated JSON by closing braces", extra={"step": "repair", "status": "repaired"})

    try:
        profile = ExtractedProfile.model_validate(parsed)
    except ValidationError as e:
        logging.warning(
            f"Backend JSON does not fit the profile schema: {e.error_count()} errors",
            extra={"step": REASON_SCHEMA_GATE, "status": "invalid"},
        )
        return RepairOutcome(profile=None, valid=False, reason=REASON_SCHEMA_GATE, repaired=repaired)

    if not profile.is_acceptable():
        # Syntactically fine but degenerate: usually prompt/schema drift, not transport
        logging.warning(
            f"Extraction failed acceptance gate: name={'yes' if profile.profile.name.strip() else 'no'} "
            f"experience={len(profile.experience)} education={len(profile.education)}",
            extra={"step": REASON_SCHEMA_GATE, "status": "invalid"},
        )
        return RepairOutcome(profile=profile, valid=False, reason=REASON_SCHEMA_GATE, repaired=repaired)

    return RepairOutcome(profile=profile, valid=True, reason=REASON_OK, repaired=repaired)
