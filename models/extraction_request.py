from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProfileKind(str, Enum):
    OWN = "own"
    TARGET = "target"


class OptimizationMode(str, Enum):
    PRESERVE_STRUCTURE = "preserve_structure"
    AGGRESSIVE_REDUCE = "aggressive_reduce"

    @classmethod
    def parse(cls, value: str | None) -> "OptimizationMode | None":
        """Accept the enum value plus the legacy extension names ('less_aggressive', 'standard')."""
        if value is None or not str(value).strip():
            return None
        text = str(value).strip().lower()
        legacy = {
            "less_aggressive": cls.PRESERVE_STRUCTURE,
            "preserve": cls.PRESERVE_STRUCTURE,
            "standard": cls.AGGRESSIVE_REDUCE,
            "aggressive": cls.AGGRESSIVE_REDUCE,
        }
        if text in legacy:
            return legacy[text]
        return cls(text)

    @classmethod
    def default_for(cls, kind: ProfileKind) -> "OptimizationMode":
        # Own profiles are re-scraped often and tolerate loss of layout hints
        if kind is ProfileKind.OWN:
            return cls.AGGRESSIVE_REDUCE
        return cls.PRESERVE_STRUCTURE


class ExtractionRequest(BaseModel):
    """One incoming extraction job; built once and never mutated."""

    html: str
    source_url: str = Field(alias="sourceUrl")
    profile_kind: ProfileKind = Field(alias="profileKind")
    optimization_mode: Optional[OptimizationMode] = Field(default=None, alias="optimizationMode")

    model_config = ConfigDict(frozen=True, populate_by_name=True)
