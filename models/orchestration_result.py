from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.extracted_profile import ExtractedProfile
from models.usage_record import UsageRecord


class OrchestrationResult(BaseModel):
    """The only value that leaves the extraction core.

    ``error_detail`` keeps the provider/HTTP specifics for logs and is never
    part of the caller payload.
    """

    success: bool
    data: Optional[ExtractedProfile] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    usage: Optional[UsageRecord] = None
    raw_response: Optional[str] = None
    transient: bool = False
    user_message: Optional[str] = None
    http_status_hint: int = 200
    error_detail: Optional[str] = Field(default=None, exclude=True)

    model_config = ConfigDict(protected_namespaces=())

    @classmethod
    def failure(
        cls,
        user_message: str,
        *,
        transient: bool,
        http_status_hint: int,
        error_detail: Optional[str] = None,
        provider: Optional[str] = None,
        raw_response: Optional[str] = None,
    ) -> "OrchestrationResult":
        return cls(
            success=False,
            transient=transient,
            user_message=user_message,
            http_status_hint=http_status_hint,
            error_detail=error_detail,
            provider=provider,
            raw_response=raw_response,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the caller: camelCase keys, unset optionals omitted."""
        payload: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data.to_payload()
        if self.provider:
            payload["provider"] = self.provider
        if self.model:
            payload["model"] = self.model
        if self.usage is not None:
            payload["usage"] = self.usage.to_payload()
        if not self.success:
            payload["transient"] = self.transient
        if self.user_message:
            payload["userMessage"] = self.user_message
        return payload
