from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..catalog.models import Product


class Recommendation(BaseModel):
    product_id: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


class AdvisorResponse(BaseModel):
    recommendations: list[Recommendation] = Field(default_factory=list, max_length=3)
    model: str | None = None
    raw_text: str | None = None


class AdvisorState(str, Enum):
    idle = "idle"
    requesting = "requesting"
    succeeded = "succeeded"
    fallback_applied = "fallback_applied"
    failed = "failed"


class AdvisorSnapshot(BaseModel):
    state: AdvisorState = AdvisorState.idle
    loading: bool = False
    query: str | None = None
    error: str | None = None
    result: AdvisorResponse | None = None


# ── HTTP surface ─────────────────────────────────────────────────────────


class AdviceRequest(BaseModel):
    query: str = Field(..., max_length=1000, description="Free-text description of the need")


class RecommendationItem(BaseModel):
    product: Product
    confidence: float
    reason: str


class AdviceResponse(BaseModel):
    state: AdvisorState
    loading: bool
    query: str | None = None
    error: str | None = None
    model: str | None = None
    recommendations: list[RecommendationItem] = Field(default_factory=list)
