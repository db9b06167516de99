"""
Result Aggregator — merges catalog scoring with external deep research into
one bounded, ranked candidate list.

The two sources settle independently: a failed, slow, or unconfigured
research call only removes its own contribution. The aggregator never
raises; on any unexpected error it answers with a single hardcoded
fallback candidate.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from app.agents import config as cfg
from app.models.material_schema import (
    CurrentMaterialComposition,
    ExternalFinding,
    ExtractedRequirements,
    MaterialProperties,
    ResearchResult,
    ScoredMaterial,
)
from app.services.catalog_engine import CatalogEngine
from app.services.perf_monitor import tracker as perf_tracker
from app.services.research_engine import ResearchEngine

logger = logging.getLogger("packmat-aggregator")


@dataclass
class AggregationResult:
    materials: list[ScoredMaterial]
    data_source: str
    research: Optional[ResearchResult] = None
    catalog_count: int = 0
    external_count: int = 0
    errors: list[str] = field(default_factory=list)


def fallback_material() -> ScoredMaterial:
    """Hardcoded candidate returned when every source is empty or failed."""
    return ScoredMaterial(
        name="Cellulose Nanofiber Reinforced Bioplastic",
        composition="CNF-PBS(25μm)/EVOH(5μm)/CNF-PBS(25μm)",
        properties=MaterialProperties(
            tensile_strength=110.0,
            elongation=130.0,
            oxygen_permeability=0.8,
            water_vapor_permeability=2.2,
            heat_resistance=105.0,
            recyclability="Chemically Recyclable",
            biodegradability="Biodegradable",
            carbon_footprint=0.6,
        ),
        sustainability_score=90,
        match_score=83,
        advantages=[
            "Excellent biodegradability",
            "Lowest carbon footprint",
            "High strength and high barrier",
            "Can be 100% biomass-derived",
        ],
        considerations=[
            "Limited supply as a new technology",
            "Material cost increases by 30%",
            "Heat resistance may fall below the required specification",
        ],
    )


def synthesize_from_finding(finding: ExternalFinding, index: int) -> ScoredMaterial:
    """Placeholder candidate for a material known only from external research."""
    advantages = [
        f"Identified by {finding.source_label}",
        f"Research confidence: {finding.confidence}",
    ]
    if finding.citations:
        advantages.append(f"Reference: {finding.citations[0].title}")

    return ScoredMaterial(
        name=finding.name,
        composition=finding.name,
        properties=MaterialProperties(**cfg.SYNTHETIC_DEFAULT_PROPERTIES),
        sustainability_score=cfg.SYNTHETIC_SUSTAINABILITY_SCORE,
        match_score=cfg.SYNTHETIC_MATCH_BASE - cfg.SYNTHETIC_MATCH_STEP * index,
        advantages=advantages,
        considerations=["Property values are estimates; laboratory verification required"],
        external_insight=f"Found by external research ({finding.confidence} confidence)",
    )


def insight_line(finding: ExternalFinding, research: ResearchResult) -> str:
    line = f"External research highlights {finding.name} ({finding.confidence} confidence)"
    if research.trends:
        line += f"; trend: {research.trends[0]}"
    return line


class AggregationEngine:
    """Runs catalog scoring and deep research, then merges their outputs."""

    def __init__(
        self,
        catalog_engine: CatalogEngine,
        research_engine: Optional[ResearchEngine] = None,
        research_timeout_s: float = cfg.EXTERNAL_SEARCH_TIMEOUT_S,
    ):
        self.catalog_engine = catalog_engine
        self.research_engine = research_engine
        self.research_timeout_s = research_timeout_s

    async def aggregate(
        self,
        requirements: ExtractedRequirements,
        current: CurrentMaterialComposition,
    ) -> AggregationResult:
        try:
            return await self._aggregate(requirements, current)
        except Exception as e:
            logger.error(f"Aggregation failed — returning fallback: {e}", exc_info=True)
            perf_tracker.record_stage_error("aggregation")
            return AggregationResult(
                materials=[fallback_material()],
                data_source=cfg.SOURCE_ERROR,
                errors=[str(e)],
            )

    async def _run_catalog(self, requirements, current) -> list[ScoredMaterial]:
        start = time.perf_counter()
        try:
            return self.catalog_engine.score_materials(requirements, current)
        finally:
            perf_tracker.record_stage_duration("catalog", (time.perf_counter() - start) * 1000)

    async def _run_research(self, requirements, current) -> Optional[ResearchResult]:
        if self.research_engine is None or not self.research_engine.configured:
            return None
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(
                self.research_engine.search(requirements, current),
                timeout=self.research_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"External research timed out after {self.research_timeout_s}s — treated as unavailable")
            return None
        finally:
            perf_tracker.record_stage_duration("research", (time.perf_counter() - start) * 1000)

    async def _aggregate(self, requirements, current) -> AggregationResult:
        # All-settled join: each branch yields a value or its own exception
        catalog_outcome, research_outcome = await asyncio.gather(
            self._run_catalog(requirements, current),
            self._run_research(requirements, current),
            return_exceptions=True,
        )

        errors = []
        if isinstance(catalog_outcome, BaseException):
            logger.error(f"Catalog scoring failed: {catalog_outcome}")
            perf_tracker.record_stage_error("catalog")
            errors.append(f"catalog: {catalog_outcome}")
            catalog_results = []
        else:
            catalog_results = catalog_outcome

        if isinstance(research_outcome, BaseException):
            logger.warning(f"External research failed: {research_outcome}")
            perf_tracker.record_stage_error("research")
            errors.append(f"research: {research_outcome}")
            research = None
        else:
            research = research_outcome

        catalog_top = [m.model_copy(deep=True) for m in catalog_results[:cfg.CATALOG_TOP_N]]
        findings = research.materials if research else []

        # Positional correlation: catalog entry i receives external finding i.
        # This is an index join, not a name match.
        for i in range(min(len(catalog_top), len(findings))):
            catalog_top[i].external_insight = insight_line(findings[i], research)

        merged = list(catalog_top)
        extra = findings[len(catalog_top):]
        for i, finding in enumerate(extra[:cfg.MAX_SYNTHESIZED_ENTRIES]):
            merged.append(synthesize_from_finding(finding, i))

        if not merged:
            logger.warning("No catalog or external results — using fallback material")
            return AggregationResult(
                materials=[fallback_material()],
                data_source=cfg.SOURCE_FALLBACK,
                research=research,
                catalog_count=0,
                external_count=len(findings),
                errors=errors,
            )

        labels = []
        if catalog_top:
            labels.append(cfg.SOURCE_CATALOG)
        if findings:
            labels.append(cfg.SOURCE_EXTERNAL)
        data_source = " + ".join(labels)

        merged = merged[:cfg.AGGREGATE_MAX_RESULTS]
        logger.info(
            f"Aggregated {len(merged)} candidates ({data_source}): "
            f"{len(catalog_top)} catalog, {len(findings)} external findings"
        )
        return AggregationResult(
            materials=merged,
            data_source=data_source,
            research=research,
            catalog_count=len(catalog_results),
            external_count=len(findings),
            errors=errors,
        )
