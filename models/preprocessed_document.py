from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from models.extraction_request import OptimizationMode


class PreprocessedDocument(BaseModel):
    """Token-bounded text derived from an ExtractionRequest's HTML."""

    text: str
    original_size_bytes: int
    final_size_bytes: int
    estimated_tokens: int
    mode: OptimizationMode
    fallback_used: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def reduction_pct(self) -> float:
        if not self.original_size_bytes:
            return 0.0
        return round((self.original_size_bytes - self.final_size_bytes) / self.original_size_bytes * 100, 1)
