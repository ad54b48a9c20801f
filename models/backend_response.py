from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.usage_record import UsageRecord


class BackendAttempt(BaseModel):
    """One dispatched backend call; several may be in flight during a race."""

    backend_id: str
    timeout_budget_ms: int
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class BackendResponse(BaseModel):
    """Raw, unvalidated output of one attempt."""

    backend_id: str
    model: Optional[str] = None
    raw_text: str
    usage: UsageRecord = Field(default_factory=UsageRecord)
    http_status: Optional[int] = None
    elapsed_ms: int = 0

    model_config = ConfigDict(frozen=True, protected_namespaces=())
