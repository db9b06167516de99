"""FastAPI dependency injection — configuration and engine providers."""
from functools import lru_cache

from fastapi import Depends

from app.agents.config import AppConfig, load_config
from app.services.aggregation_engine import AggregationEngine
from app.services.catalog_engine import CatalogEngine
from app.services.experiment_plan_engine import ExperimentPlanEngine
from app.services.llm_client import LLMClient
from app.services.recommendation_engine import RecommendationEngine
from app.services.research_engine import ResearchEngine
from app.services.spec_analysis_engine import SpecAnalysisEngine


@lru_cache
def get_config() -> AppConfig:
    """Environment is read once per process; tests override this dependency."""
    return load_config()


def get_catalog_engine() -> CatalogEngine:
    return CatalogEngine()


def get_research_engine(config: AppConfig = Depends(get_config)) -> ResearchEngine:
    return ResearchEngine(LLMClient(config.research_llm))


def get_aggregation_engine(
    config: AppConfig = Depends(get_config),
    catalog: CatalogEngine = Depends(get_catalog_engine),
    research: ResearchEngine = Depends(get_research_engine),
) -> AggregationEngine:
    return AggregationEngine(catalog, research, research_timeout_s=config.external_search_timeout_s)


def get_recommendation_engine(
    config: AppConfig = Depends(get_config),
    aggregator: AggregationEngine = Depends(get_aggregation_engine),
) -> RecommendationEngine:
    return RecommendationEngine(LLMClient(config.synthesis_llm), aggregator)


def get_experiment_plan_engine(config: AppConfig = Depends(get_config)) -> ExperimentPlanEngine:
    return ExperimentPlanEngine(LLMClient(config.synthesis_llm))


def get_spec_analysis_engine(config: AppConfig = Depends(get_config)) -> SpecAnalysisEngine:
    return SpecAnalysisEngine(LLMClient(config.analysis_llm))
