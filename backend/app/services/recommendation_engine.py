"""
Recommendation Synthesizer — turns the aggregated candidate list into at
most three graded recommendations.

Primary path asks the synthesis LLM for a JSON answer graded on the A-D
rubric. When the capability is unavailable or the answer is malformed, a
deterministic heuristic produces the recommendations instead.
"""
import re
import math
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from app.agents import config as cfg
from app.agents.tool_schemas import RecommendedMaterialOut, parse_tool_output
from app.models.material_schema import (
    AnalysisDetails,
    CurrentMaterialComposition,
    ExternalFinding,
    Recommendation,
    RecommendationReport,
    RecommendationScores,
    Requirement,
    ResearchResult,
    ScoredMaterial,
    clamp_score,
)
from app.services.aggregation_engine import AggregationEngine, fallback_material
from app.services.grading_criteria import DETAILED_GRADING_CRITERIA, score_to_grade
from app.services.llm_client import LLMClient, extract_json_block, get_system_prompt
from app.services.perf_monitor import tracker as perf_tracker
from app.services.requirement_extractor import extract_requirements

logger = logging.getLogger("packmat-synthesis")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mean_score(scores: RecommendationScores) -> int:
    values = scores.as_list()
    return round_half_up(sum(values) / len(values))


# ---------------------------------------------------------------------------
# LLM answer parsing
# ---------------------------------------------------------------------------

@dataclass
class ParseOk:
    recommendations: list[Recommendation]


@dataclass
class ParseMalformed:
    raw_text: str
    reason: str


ParseResult = Union[ParseOk, ParseMalformed]


def _graded(rec: Recommendation) -> Recommendation:
    return rec.model_copy(update={"grade": score_to_grade(rec.total_score).grade})


def _to_recommendation(item: RecommendedMaterialOut) -> Recommendation:
    scores = RecommendationScores(**item.scores.model_dump())
    total = item.total_score
    if total is None or not math.isfinite(total):
        total = mean_score(scores)
    return _graded(Recommendation(
        material_name=item.material_name,
        composition_parts=item.composition,
        scores=scores,
        total_score=total,
        reasoning=item.reasoning,
        features=item.features,
        data_sources=item.data_sources,
    ))


def parse_recommendations(text: Optional[str]) -> ParseResult:
    """Decode the first balanced JSON object and validate its recommendations."""
    block = extract_json_block(text or "")
    if block is None:
        return ParseMalformed(text or "", "no JSON object found")
    try:
        output = parse_tool_output("synthesize_recommendations", block)
    except ValueError as e:
        # json.JSONDecodeError and pydantic ValidationError are both ValueErrors
        return ParseMalformed(text, f"invalid recommendation JSON: {e}")

    recommendations = [_to_recommendation(item) for item in output.recommendations]
    if not recommendations:
        return ParseMalformed(text, "empty recommendation list")
    return ParseOk(recommendations[:cfg.MAX_RECOMMENDATIONS])


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def render_requirement_lines(requirements: Sequence[Requirement]) -> str:
    return "\n".join(
        f"- {r.name}: {r.value} {r.unit or ''} (Importance: {r.importance})"
        for r in requirements
    )


def build_synthesis_prompt(
    materials: Sequence[ScoredMaterial],
    research: Optional[ResearchResult],
    current: CurrentMaterialComposition,
    requirements: Sequence[Requirement],
) -> str:
    catalog_lines = "\n".join(
        f"{i + 1}. {m.name} ({m.composition})\n"
        f"- Match Score: {m.match_score:g}\n"
        f"- Sustainability Score: {m.sustainability_score:g}\n"
        f"- Advantages: {', '.join(m.advantages)}\n"
        f"- Considerations: {', '.join(m.considerations)}"
        for i, m in enumerate(materials)
    )
    if research:
        research_block = (
            f"Discovered Materials: {', '.join(f.name for f in research.materials)}\n"
            f"Technology Trends: {', '.join(research.trends[:3])}\n"
            f"Considerations: {', '.join(research.considerations[:3])}"
        )
    else:
        research_block = "No in-depth research results"

    return f"""
You are a packaging materials expert. Please integrate and analyze the following search results to select the TOP 3 recommended materials.

{DETAILED_GRADING_CRITERIA}

[Current Material Composition]
{current.composition}
Properties: {', '.join(current.properties)}

[Performance Requirements]
{render_requirement_lines(requirements)}

[Database Search Results]
{catalog_lines}

[In-Depth Research Results]
{research_block}

[Instructions]
Based on the above evaluation criteria, comprehensively analyze the search results and output the TOP 3 recommended materials in the following JSON format.
Assign every score on the A-D scale (A:85-100, B:70-84, C:55-69, D:0-54).

{{
  "recommendations": [
    {{
      "materialName": "Material Name",
      "composition": ["Component1", "Component2"],
      "scores": {{"physical": 85, "environmental": 90, "cost": 75, "safety": 95, "supply": 80}},
      "totalScore": 85,
      "reasoning": "Detailed reasoning for selection",
      "features": ["Feature1", "Feature2"],
      "dataSources": ["{cfg.DATA_SOURCE_CATALOG}", "{cfg.DATA_SOURCE_EXTERNAL}", "{cfg.DATA_SOURCE_AI}"]
    }}
  ]
}}

The total score is the weighted average of the categories. Only output the JSON.
"""


# ---------------------------------------------------------------------------
# Deterministic fallback
# ---------------------------------------------------------------------------

def find_related_finding(name: str, findings: Sequence[ExternalFinding]) -> Optional[ExternalFinding]:
    """First finding whose name contains, or is contained in, ``name`` (case-insensitive)."""
    lowered = name.lower()
    for finding in findings:
        other = finding.name.lower()
        if other and (other in lowered or lowered in other):
            return finding
    return None


def _is_biodegradable(text: Optional[str]) -> bool:
    lowered = (text or "").lower()
    if lowered.startswith("non"):
        return False
    return "biodegradab" in lowered or "compostable" in lowered


def _features(material: ScoredMaterial) -> list[str]:
    props = material.properties
    features = []
    if _is_biodegradable(props.biodegradability):
        features.append("biodegradable")
    if "recyclable" in (props.recyclability or "").lower():
        features.append("recyclable")
    if material.sustainability_score > cfg.HIGH_SUSTAINABILITY_THRESHOLD:
        features.append("high sustainability")
    if props.carbon_footprint and props.carbon_footprint < cfg.LOW_CARBON_FEATURE_KG_CO2:
        features.append("low carbon")
    return features


def fallback_recommendations(
    materials: Sequence[ScoredMaterial],
    research: Optional[ResearchResult] = None,
) -> list[Recommendation]:
    findings = research.materials if research else []
    recommendations = []

    for index, material in enumerate(materials[:cfg.MAX_RECOMMENDATIONS]):
        related = find_related_finding(material.name, findings)

        tensile = material.properties.tensile_strength
        if tensile is None or not math.isfinite(tensile):
            tensile = 0.0
        physical = min(cfg.PHYSICAL_CEILING, cfg.PHYSICAL_BASE + tensile * cfg.PHYSICAL_PER_TENSILE)

        scores = RecommendationScores(
            physical=round_half_up(physical),
            environmental=round_half_up(clamp_score(material.sustainability_score)),
            cost=cfg.COST_BASE - cfg.COST_RANK_DECAY * index,
            safety=cfg.SAFETY_DEFAULT,
            supply=cfg.SUPPLY_WITH_FINDING if related else cfg.SUPPLY_WITHOUT_FINDING,
        )

        data_sources = [cfg.DATA_SOURCE_CATALOG]
        if related:
            data_sources.append(cfg.DATA_SOURCE_EXTERNAL)
            if related.confidence == "high":
                data_sources.append(cfg.DATA_SOURCE_AI)

        reasoning = ". ".join(material.advantages[:2]) + ". " + (
            material.considerations[0] if material.considerations else ""
        )

        recommendations.append(_graded(Recommendation(
            material_name=material.name,
            composition_parts=[p.strip() for p in re.split(r"[/,]", material.composition) if p.strip()],
            scores=scores,
            total_score=mean_score(scores),
            reasoning=reasoning,
            features=_features(material),
            data_sources=data_sources,
        )))

    return recommendations


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

@dataclass
class SynthesisResult:
    recommendations: list[Recommendation]
    used_llm: bool


class RecommendationEngine:
    """Synthesizes recommendations and runs the end-to-end recommendation pipeline."""

    def __init__(self, llm: LLMClient, aggregator: Optional[AggregationEngine] = None):
        self.llm = llm
        self.aggregator = aggregator

    async def synthesize(
        self,
        materials: Sequence[ScoredMaterial],
        current: CurrentMaterialComposition,
        requirements: Sequence[Requirement],
        research: Optional[ResearchResult] = None,
    ) -> SynthesisResult:
        start = time.perf_counter()
        try:
            if self.llm.configured:
                prompt = build_synthesis_prompt(materials, research, current, requirements)
                text = await self.llm.generate(prompt, system_prompt=get_system_prompt("integrator"))
                if text is not None:
                    parsed = parse_recommendations(text)
                    if isinstance(parsed, ParseOk):
                        logger.info(f"LLM synthesis produced {len(parsed.recommendations)} recommendations")
                        return SynthesisResult(parsed.recommendations, used_llm=True)
                    logger.warning(f"LLM synthesis output malformed ({parsed.reason}) — using heuristic fallback")
                else:
                    logger.warning("LLM synthesis unavailable — using heuristic fallback")
            else:
                logger.info("Synthesis LLM not configured — using heuristic fallback")

            return SynthesisResult(fallback_recommendations(materials, research), used_llm=False)
        finally:
            perf_tracker.record_stage_duration("synthesis", (time.perf_counter() - start) * 1000)

    async def recommend(
        self,
        requirements: Sequence[Requirement],
        current: CurrentMaterialComposition,
    ) -> RecommendationReport:
        """
        Full pipeline: extract, aggregate, synthesize. Never raises; an
        unexpected error yields ``success=False`` with a hardcoded fallback
        recommendation.
        """
        if self.aggregator is None:
            raise RuntimeError("RecommendationEngine.recommend requires an aggregator")

        start = time.perf_counter()
        try:
            extracted = extract_requirements(requirements)
            aggregation = await self.aggregator.aggregate(extracted, current)
            synthesis = await self.synthesize(
                aggregation.materials, current, requirements, aggregation.research,
            )
            recommendations = synthesis.recommendations[:cfg.MAX_RECOMMENDATIONS]

            if not recommendations:
                confidence = cfg.CONFIDENCE_LOW
            elif synthesis.used_llm:
                confidence = cfg.CONFIDENCE_HIGH
            else:
                confidence = cfg.CONFIDENCE_FALLBACK

            report = RecommendationReport(
                success=True,
                recommendations=recommendations,
                analysis_details=AnalysisDetails(
                    db_search_result_count=aggregation.catalog_count,
                    external_result_count=aggregation.external_count,
                    confidence_level=confidence,
                    data_source=aggregation.data_source,
                    timestamp=datetime.now(timezone.utc).isoformat(),
                ),
            )
            logger.info(
                f"Recommendation complete: {len(recommendations)} results, confidence={confidence}"
            )
            return report
        except Exception as e:
            logger.error(f"Recommendation pipeline failed: {e}", exc_info=True)
            perf_tracker.record_stage_error("pipeline")
            return RecommendationReport(
                success=False,
                recommendations=fallback_recommendations([fallback_material()]),
                analysis_details=AnalysisDetails(
                    confidence_level=cfg.CONFIDENCE_ERROR,
                    data_source=cfg.SOURCE_ERROR,
                    timestamp=datetime.now(timezone.utc).isoformat(),
                ),
                error=str(e),
            )
        finally:
            perf_tracker.record_pipeline_complete((time.perf_counter() - start) * 1000)
