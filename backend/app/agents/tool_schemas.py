"""
Structured output schemas for the packaging materials LLM pipeline.

These Pydantic models define the output contract for every JSON-answering
LLM call (recommendation synthesis, experiment planning, requirement
analysis). The model is prompted with the camelCase shape shown in the
prompt; aliases accept that shape while the Python side and the HTTP API
use snake_case field names.

Usage:
    from app.agents.tool_schemas import parse_tool_output

    output = parse_tool_output("synthesize_recommendations", json_text)
    for rec in output.recommendations:
        ...
"""

from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _LLMModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ── Tool 1: Synthesize Recommendations ───────────────────────────────────────

class RecommendationScoresOut(_LLMModel):
    """Per-category scores on the A-D scale (0-100). Clamped downstream."""
    physical: float = Field(..., description="Physical performance")
    environmental: float = Field(..., description="Environmental performance")
    cost: float = Field(..., description="Cost efficiency")
    safety: float = Field(..., description="Safety")
    supply: float = Field(..., description="Supply stability")


class RecommendedMaterialOut(_LLMModel):
    material_name: str = Field(..., alias="materialName", min_length=1)
    composition: List[str] = Field(default_factory=list)
    scores: RecommendationScoresOut
    total_score: Optional[float] = Field(
        None, alias="totalScore",
        description="Weighted total; recomputed as the plain mean when absent",
    )
    reasoning: str = ""
    features: List[str] = Field(default_factory=list)
    data_sources: List[str] = Field(default_factory=list, alias="dataSources")

    @field_validator("composition", mode="before")
    @classmethod
    def _split_composition(cls, v):
        # Some answers give "A/B/C" instead of a list
        if isinstance(v, str):
            return [p.strip() for p in v.replace(",", "/").split("/") if p.strip()]
        return v


class SynthesizeRecommendationsTool(BaseModel):
    """
    Integrate catalog results and deep-research findings into the top
    recommended replacement materials, graded on the A-D rubric.
    """

    class Output(_LLMModel):
        recommendations: List[RecommendedMaterialOut] = Field(
            ..., description="Recommended materials, best first"
        )


# ── Tool 2: Generate Experiment Plan ─────────────────────────────────────────

class PlanOverview(_LLMModel):
    title: str
    objective: str = ""
    duration: str = ""
    budget: str = ""


class PlanPhase(_LLMModel):
    phase: str
    duration: str = ""
    tasks: List[str] = Field(default_factory=list)


class PlanTest(_LLMModel):
    name: str
    method: str = ""
    target: str = ""
    frequency: str = ""


class PlanTestCategory(_LLMModel):
    category: str
    tests: List[PlanTest] = Field(default_factory=list)


class PlanRisk(_LLMModel):
    risk: str
    impact: str = ""
    mitigation: str = ""


class PlanDeliverable(_LLMModel):
    deliverable: str
    timeline: str = ""
    description: str = ""


class GenerateExperimentPlanTool(BaseModel):
    """
    Staged experimental plan for moving from the current material to a
    recommended one, with focused verification for weak score categories.
    """

    class Output(_LLMModel):
        overview: PlanOverview
        phases: List[PlanPhase] = Field(default_factory=list)
        key_tests: List[PlanTestCategory] = Field(default_factory=list, alias="keyTests")
        risks: List[PlanRisk] = Field(default_factory=list)
        deliverables: List[PlanDeliverable] = Field(default_factory=list)


# ── Tool 3: Analyze Requirements ─────────────────────────────────────────────

class AnalyzedRequirement(_LLMModel):
    name: str = Field(..., min_length=1)
    value: str = ""
    unit: Optional[str] = None
    importance: str = "medium"

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return "" if v is None else str(v)

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, v):
        lowered = str(v or "").strip().lower()
        return lowered if lowered in ("high", "medium", "low") else "medium"


class AnalyzedMaterials(_LLMModel):
    composition: str = ""
    properties: List[str] = Field(default_factory=list)
    analysis_confidence: str = Field("medium", alias="analysisConfidence")


class AnalyzeRequirementsTool(BaseModel):
    """
    Extract performance requirements and the (estimated) material composition
    from a product specification document.
    """

    class Output(_LLMModel):
        requirements: List[AnalyzedRequirement] = Field(default_factory=list)
        materials: AnalyzedMaterials = Field(default_factory=AnalyzedMaterials)


# ── Registry ──────────────────────────────────────────────────────────────────

TOOL_REGISTRY: dict[str, type] = {
    "synthesize_recommendations": SynthesizeRecommendationsTool,
    "generate_experiment_plan": GenerateExperimentPlanTool,
    "analyze_requirements": AnalyzeRequirementsTool,
}


def parse_tool_output(tool_name: str, raw_json: str | dict) -> BaseModel:
    """
    Parse and validate LLM output against the tool's Output schema.

    Raises:
        KeyError: If tool_name not in registry
        ValueError: If raw_json is not valid JSON (json.JSONDecodeError)
        ValidationError: If the output does not match the Output schema
    """
    import json as _json

    schema_class = TOOL_REGISTRY[tool_name]
    output_cls = schema_class.Output

    data = _json.loads(raw_json) if isinstance(raw_json, str) else raw_json
    return output_cls.model_validate(data)
