from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Pattern(BaseModel):
    """One historical literal combination of a scheme and its next counter."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    prefix: str = ""
    suffix: str = ""
    next_counter: int
    counter_length: int | None = None

    @property
    def text(self) -> str:
        return f"{self.prefix}{self.suffix}"


class PatternView(BaseModel):
    prefix: str
    suffix: str
    next_counter: int
    counter_length: int | None = None


class RegenerationPreviewRequest(BaseModel):
    fields: list[dict[str, Any]] = Field(min_length=1)
    case_mode: Literal["none", "upper", "lower"] = "none"


class PatternOutcomeView(BaseModel):
    prefix: str
    suffix: str
    next_counter: int
    status: str
    field_values: list[str] = Field(default_factory=list)
    requested: int = 0
    issued: int = 0
    reason: str | None = None


class RegenerationPreviewResponse(BaseModel):
    scheme_id: int
    total_requested: int
    planned: list[PatternOutcomeView]
    skipped: list[PatternOutcomeView]
