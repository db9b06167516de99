"""
Material domain schema.

Request-scoped inputs (requirements, current material), the static catalog
record, and every intermediate/final result of the recommendation pipeline.
All scores are clamped to 0-100 on construction.
"""
from __future__ import annotations

import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Importance = Literal["high", "medium", "low"]
Confidence = Literal["high", "medium", "low"]
CitationKind = Literal["paper", "patent", "report", "website", "other"]
MaterialType = Literal["bioplastic", "recycled", "bio-based", "cellulose"]


def clamp_score(value: float) -> float:
    """Clamp to [0, 100]; non-finite values collapse to 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, float(value)))


# ── Inputs ────────────────────────────────────────────────────────────────────

class Requirement(BaseModel):
    """One named performance requirement, e.g. ``Tensile Strength: 65 N/15mm``."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: str = Field(..., description="Numeric-parseable value, parsed best-effort")
    unit: Optional[str] = None
    importance: Importance = "medium"

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        if v is None:
            return ""
        return str(v)


class CurrentMaterialComposition(BaseModel):
    """The material being replaced. Matching context only."""
    model_config = ConfigDict(frozen=True)

    composition: str = ""
    properties: List[str] = Field(default_factory=list)


class ExtractedRequirements(BaseModel):
    """Fixed-schema numeric feature set; ``None`` means not required."""
    tensile_strength: Optional[float] = None
    elongation: Optional[float] = None
    impact_strength: Optional[float] = None
    heat_seal_strength: Optional[float] = None
    oxygen_permeability: Optional[float] = None
    water_vapor_permeability: Optional[float] = None
    light_blocking: Optional[float] = None
    heat_resistance: Optional[float] = None
    cold_resistance: Optional[float] = None


# ── Static catalog ────────────────────────────────────────────────────────────

class CatalogProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    tensile_strength: float
    elongation: float
    melting_point: float
    density: float
    oxygen_permeability: float
    water_vapor_permeability: float


class CatalogSustainability(BaseModel):
    model_config = ConfigDict(frozen=True)

    biodegradable: bool
    compostable: Optional[bool] = None
    recyclable: Optional[bool] = None
    biomass_content: Optional[float] = Field(None, description="Percent of biomass-derived content")
    recycled_content: Optional[float] = Field(None, description="Percent of post-consumer recycled content")
    carbon_footprint: float = Field(..., description="kg-CO2 per kg of material")


class CatalogMaterial(BaseModel):
    """Read-only reference record for one candidate packaging polymer."""
    model_config = ConfigDict(frozen=True)

    id: str
    formula: str
    name: str
    type: MaterialType
    properties: CatalogProperties
    sustainability: CatalogSustainability


# ── Pipeline results ──────────────────────────────────────────────────────────

class MaterialProperties(BaseModel):
    """Normalized property subset shown for every scored candidate."""
    tensile_strength: Optional[float] = None
    elongation: Optional[float] = None
    oxygen_permeability: Optional[float] = None
    water_vapor_permeability: Optional[float] = None
    heat_resistance: Optional[float] = None
    recyclability: Optional[str] = None
    biodegradability: Optional[str] = None
    carbon_footprint: Optional[float] = None


class ScoredMaterial(BaseModel):
    name: str
    composition: str
    properties: MaterialProperties
    sustainability_score: float = 0.0
    match_score: float = 0.0
    advantages: List[str] = Field(default_factory=list)
    considerations: List[str] = Field(default_factory=list)
    external_insight: Optional[str] = None

    @field_validator("sustainability_score", "match_score", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_score(float(v)) if v is not None else 0.0


class Citation(BaseModel):
    title: str
    authors: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None
    kind: CitationKind = "other"


class ExternalFinding(BaseModel):
    name: str
    source_label: str
    confidence: Confidence = "medium"
    citations: Optional[List[Citation]] = None


class ResearchResult(BaseModel):
    """Structured view of one external deep-research response."""
    materials: List[ExternalFinding] = Field(default_factory=list)
    trends: List[str] = Field(default_factory=list)
    considerations: List[str] = Field(default_factory=list)
    citations: List[Citation] = Field(default_factory=list)
    full_text: str = ""
    timestamp: str = ""


class RecommendationScores(BaseModel):
    physical: int
    environmental: int
    cost: int
    safety: int
    supply: int

    @field_validator("physical", "environmental", "cost", "safety", "supply", mode="before")
    @classmethod
    def _clamp(cls, v):
        return int(math.floor(clamp_score(float(v)) + 0.5))

    def as_list(self) -> list[int]:
        return [self.physical, self.environmental, self.cost, self.safety, self.supply]


class Recommendation(BaseModel):
    material_name: str
    composition_parts: List[str] = Field(default_factory=list)
    scores: RecommendationScores
    total_score: int
    grade: Optional[str] = Field(None, description="A-D band of total_score")
    reasoning: str = ""
    features: List[str] = Field(default_factory=list)
    data_sources: List[str] = Field(default_factory=list)

    @field_validator("total_score", mode="before")
    @classmethod
    def _clamp_total(cls, v):
        return int(math.floor(clamp_score(float(v)) + 0.5))


class AnalysisDetails(BaseModel):
    """Metadata envelope delivered alongside the final recommendations."""
    db_search_result_count: int = 0
    external_result_count: int = 0
    confidence_level: Literal["high", "low", "error", "fallback"] = "low"
    data_source: str = ""
    timestamp: str


class RecommendationReport(BaseModel):
    """Final recommendation envelope; the error path still carries a fallback entry."""
    success: bool
    recommendations: List[Recommendation] = Field(default_factory=list)
    analysis_details: AnalysisDetails
    error: Optional[str] = None
