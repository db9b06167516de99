"""Analysis API routes — experiment plans, requirement analysis, grading rubric."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.api.deps import get_experiment_plan_engine, get_spec_analysis_engine
from app.models.material_schema import CurrentMaterialComposition, Recommendation, Requirement
from app.services.experiment_plan_engine import ExperimentPlan, ExperimentPlanEngine
from app.services.grading_criteria import CATEGORY_WEIGHTS, GRADING_CRITERIA
from app.services.spec_analysis_engine import SpecAnalysisEngine

router = APIRouter(prefix="/api", tags=["Analysis"])
logger = logging.getLogger("packmat-api.analysis")


class ExperimentPlanRequest(BaseModel):
    material: Recommendation
    current_material: CurrentMaterialComposition = Field(default_factory=CurrentMaterialComposition)
    requirements: List[Requirement] = Field(default_factory=list)


class ExperimentPlanMetadata(BaseModel):
    generated_at: str
    confidence: str


class ExperimentPlanResponse(BaseModel):
    success: bool = True
    experiment_plan: ExperimentPlan
    metadata: ExperimentPlanMetadata


class RequirementAnalysisRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Plain text of the specification document")


class RequirementAnalysisResponse(BaseModel):
    requirements: List[Requirement]
    current_material: CurrentMaterialComposition
    analysis_confidence: str


@router.post("/experiment-plan", response_model=ExperimentPlanResponse)
async def experiment_plan(
    body: ExperimentPlanRequest,
    engine: ExperimentPlanEngine = Depends(get_experiment_plan_engine),
):
    result = await engine.generate(body.material, body.current_material, body.requirements)
    return ExperimentPlanResponse(
        experiment_plan=result.plan,
        metadata=ExperimentPlanMetadata(generated_at=result.generated_at, confidence=result.confidence),
    )


@router.post("/requirements/analyze", response_model=RequirementAnalysisResponse)
async def analyze_requirements(
    body: RequirementAnalysisRequest,
    engine: SpecAnalysisEngine = Depends(get_spec_analysis_engine),
):
    """Extract requirements from document text. 503 when unavailable, 502 on an unusable answer."""
    if not engine.configured:
        raise HTTPException(status_code=503, detail="Analysis LLM is not configured")

    result = await engine.analyze(body.text)
    if result is None:
        raise HTTPException(status_code=502, detail="Failed to parse requirements from the model response")

    return RequirementAnalysisResponse(
        requirements=[Requirement(**r.model_dump()) for r in result.requirements],
        current_material=CurrentMaterialComposition(
            composition=result.materials.composition,
            properties=result.materials.properties,
        ),
        analysis_confidence=result.materials.analysis_confidence,
    )


@router.get("/grading-criteria")
async def grading_criteria():
    return {
        "grades": [
            {
                "grade": band.grade,
                "label": band.label,
                "description": band.description,
                "score_range": {"min": band.min_score, "max": band.max_score},
            }
            for band in GRADING_CRITERIA
        ],
        "weights": CATEGORY_WEIGHTS,
    }
