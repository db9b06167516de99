"""Materials API routes — catalog search, deep research, aggregated search, recommendations."""
import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.agents import config as cfg
from app.agents.config import AppConfig
from app.api.deps import (
    get_aggregation_engine,
    get_catalog_engine,
    get_config,
    get_recommendation_engine,
    get_research_engine,
)
from app.models.material_schema import (
    CurrentMaterialComposition,
    RecommendationReport,
    Requirement,
    ResearchResult,
    ScoredMaterial,
)
from app.services.aggregation_engine import AggregationEngine
from app.services.catalog_engine import CatalogEngine
from app.services.recommendation_engine import RecommendationEngine
from app.services.requirement_extractor import extract_requirements
from app.services.research_engine import ResearchEngine

router = APIRouter(prefix="/api/materials", tags=["Materials"])
logger = logging.getLogger("packmat-api.materials")

DB_SEARCH_LIMIT = 5


class MaterialSearchRequest(BaseModel):
    current_material: CurrentMaterialComposition = Field(default_factory=CurrentMaterialComposition)
    requirements: List[Requirement] = Field(default_factory=list)


class ResearchRequest(MaterialSearchRequest):
    search_query: Optional[str] = Field(None, description="Replaces the generated research prompt")


class CatalogSearchResponse(BaseModel):
    success: bool = True
    materials: List[ScoredMaterial]
    total_count: int
    data_source: str = cfg.SOURCE_CATALOG


class ResearchResponse(BaseModel):
    success: bool = True
    result: ResearchResult


class AggregatedSearchResponse(BaseModel):
    success: bool = True
    materials: List[ScoredMaterial]
    data_source: str
    catalog_count: int
    external_count: int


@router.post("/db-search", response_model=CatalogSearchResponse)
async def catalog_search(
    body: MaterialSearchRequest,
    engine: CatalogEngine = Depends(get_catalog_engine),
):
    """Score the whole organic polymer catalog; return the best matches."""
    extracted = extract_requirements(body.requirements)
    results = engine.score_materials(extracted, body.current_material)
    return CatalogSearchResponse(materials=results[:DB_SEARCH_LIMIT], total_count=len(results))


@router.post("/research", response_model=ResearchResponse)
async def deep_research(
    body: ResearchRequest,
    engine: ResearchEngine = Depends(get_research_engine),
    config: AppConfig = Depends(get_config),
):
    """External deep research. 503 when the research capability is unavailable."""
    if not engine.configured:
        raise HTTPException(status_code=503, detail="Research LLM is not configured")

    extracted = extract_requirements(body.requirements)
    try:
        result = await asyncio.wait_for(
            engine.search(extracted, body.current_material, body.search_query),
            timeout=config.external_search_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.warning("Deep research timed out")
        result = None

    if result is None:
        raise HTTPException(status_code=503, detail="Deep research is unavailable")
    return ResearchResponse(result=result)


@router.post("/search", response_model=AggregatedSearchResponse)
async def aggregated_search(
    body: MaterialSearchRequest,
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """Catalog and external research merged into at most five candidates."""
    extracted = extract_requirements(body.requirements)
    aggregation = await engine.aggregate(extracted, body.current_material)
    return AggregatedSearchResponse(
        materials=aggregation.materials,
        data_source=aggregation.data_source,
        catalog_count=aggregation.catalog_count,
        external_count=aggregation.external_count,
    )


@router.post("/recommend", response_model=RecommendationReport)
async def recommend(
    body: MaterialSearchRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    """Top three graded recommendations plus the analysis envelope."""
    report = await engine.recommend(body.requirements, body.current_material)
    if not report.success:
        return JSONResponse(status_code=500, content=report.model_dump(mode="json"))
    return report
