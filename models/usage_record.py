from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UsageRecord(BaseModel):
    """Token usage of one backend call.

    ``None`` means the backend did not report the value; zero is a real count.
    """

    input_tokens: Optional[int] = Field(default=None, alias="inputTokens")
    output_tokens: Optional[int] = Field(default=None, alias="outputTokens")
    total_tokens: Optional[int] = Field(default=None, alias="totalTokens")
    request_id: Optional[str] = Field(default=None, alias="requestId")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def is_empty(self) -> bool:
        return self.input_tokens is None and self.output_tokens is None and self.total_tokens is None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"request_id"})

    def as_trace(self) -> Dict[str, Any]:
        """Snake-case dict for the JSONL call trace."""
        return self.model_dump(exclude_none=True)
