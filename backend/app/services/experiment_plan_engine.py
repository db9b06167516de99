"""
Experiment Plan Engine — staged validation plan for switching from the
current material to a recommended one.

LLM answer when available, otherwise a fixed three-phase template filled
with the material's name and composition.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from app.agents import config as cfg
from app.agents.tool_schemas import (
    GenerateExperimentPlanTool,
    PlanDeliverable,
    PlanOverview,
    PlanPhase,
    PlanRisk,
    PlanTest,
    PlanTestCategory,
    parse_tool_output,
)
from app.models.material_schema import CurrentMaterialComposition, Recommendation, Requirement
from app.services.grading_criteria import DETAILED_GRADING_CRITERIA
from app.services.llm_client import LLMClient, extract_json_block, get_system_prompt
from app.services.perf_monitor import timed_async

logger = logging.getLogger("packmat-experiment")

ExperimentPlan = GenerateExperimentPlanTool.Output

PLAN_MAX_TOKENS = 4000
WEAK_SCORE_THRESHOLD = 70

_SCORE_LABELS = {
    "physical": "Physical Performance",
    "environmental": "Environmental Performance",
    "cost": "Cost Efficiency",
    "safety": "Safety",
    "supply": "Supply Stability",
}


@dataclass
class ExperimentPlanResult:
    plan: ExperimentPlan
    confidence: str
    generated_at: str


def build_plan_prompt(
    material: Recommendation,
    current: CurrentMaterialComposition,
    requirements: Sequence[Requirement],
) -> str:
    requirement_lines = "\n".join(
        f"- {r.name}: {r.value} {r.unit or ''} (Importance: {r.importance})" for r in requirements
    )
    scores = material.scores.model_dump()
    score_lines = "\n".join(f"- {_SCORE_LABELS[k]}: {v} points" for k, v in scores.items())
    weak = [_SCORE_LABELS[k] for k, v in scores.items() if v < WEAK_SCORE_THRESHOLD]
    weak_line = ", ".join(weak) if weak else "None"

    return f"""
You are an expert in packaging material development. Based on the following information, create a detailed experimental plan.

{DETAILED_GRADING_CRITERIA}

[Recommended Material]
- Material Name: {material.material_name}
- Composition: {'/'.join(material.composition_parts)}
- Total Score: {material.total_score} points
- Reason for Recommendation: {material.reasoning}
- Features: {', '.join(material.features)}

[Current Material]
- Composition: {current.composition}
- Properties: {', '.join(current.properties)}

[Performance Requirements]
{requirement_lines}

[Detailed Evaluation Scores]
{score_lines}

Categories scoring below {WEAK_SCORE_THRESHOLD} (plan focused verification for these): {weak_line}

Output in the following JSON format:

{{
  "overview": {{"title": "...", "objective": "...", "duration": "e.g. 3-6 months", "budget": "..."}},
  "phases": [{{"phase": "Phase 1: Phase Name", "duration": "...", "tasks": ["..."]}}],
  "keyTests": [{{"category": "...", "tests": [{{"name": "...", "method": "Measurement Method/Standard", "target": "...", "frequency": "..."}}]}}],
  "risks": [{{"risk": "...", "impact": "...", "mitigation": "..."}}],
  "deliverables": [{{"deliverable": "...", "timeline": "...", "description": "..."}}]
}}

Reference standard testing methods used in the packaging materials industry, define phased risk
management and milestones, and emphasize sustainability and environmental impact assessment.

Only output the JSON. Do not include any other explanation.
"""


def fallback_plan(material: Recommendation, current: CurrentMaterialComposition) -> ExperimentPlan:
    composition = "/".join(material.composition_parts) or material.material_name
    return ExperimentPlan(
        overview=PlanOverview(
            title=f"{material.material_name} Development Experiment Plan",
            objective=(
                f"Experiment plan and evaluation methods to achieve transition from existing "
                f"materials ({current.composition}) to {material.material_name}"
            ),
            duration="3-6 months",
            budget="$50,000-80,000",
        ),
        phases=[
            PlanPhase(
                phase="Phase 1: Material Procurement and Basic Evaluation",
                duration="1 month",
                tasks=[
                    "Selection and procurement of raw material suppliers",
                    "Measurement of basic physical properties (tensile strength, elongation, thickness)",
                    "Chemical composition analysis and FT-IR measurement",
                    "DSC/TGA thermal analysis",
                ],
            ),
            PlanPhase(
                phase="Phase 2: Composite Material Formulation Optimization",
                duration="2 months",
                tasks=[
                    f"Optimization of {composition} blend ratio",
                    "Investigation of lamination conditions (temperature, pressure, time)",
                    "Evaluation of interlayer adhesive strength",
                    "Measurement of barrier performance (oxygen and water vapor transmission rate)",
                ],
            ),
            PlanPhase(
                phase="Phase 3: Practical Application Evaluation",
                duration="2-3 months",
                tasks=[
                    "Performance evaluation under actual packaging conditions",
                    "Food safety testing",
                    "Cost analysis and mass production consideration",
                    "Final report preparation",
                ],
            ),
        ],
        key_tests=[
            PlanTestCategory(
                category="Physical Performance",
                tests=[
                    PlanTest(name="Tensile Strength", method="JIS K7127",
                             target="Above requirement specification value", frequency="Each phase"),
                    PlanTest(name="Barrier Performance", method="JIS K7126",
                             target="Equal to or better than current materials", frequency="Weekly"),
                ],
            ),
        ],
        risks=[
            PlanRisk(risk="Instability of raw material supply", impact="Schedule delay",
                     mitigation="Securing multiple suppliers"),
        ],
        deliverables=[
            PlanDeliverable(deliverable="Material Specification", timeline="After 2 months",
                            description="Detailed specifications and quality standards for optimized materials"),
            PlanDeliverable(deliverable="Physical Properties Evaluation Report", timeline="After 3 months",
                            description="Results of all test items and pass/fail judgment"),
            PlanDeliverable(deliverable="Processing Conditions Guidelines", timeline="After 4 months",
                            description="Optimal conditions for printing, laminating, and bag making"),
            PlanDeliverable(deliverable="Practical Application Proposal", timeline="After 5 months",
                            description="Technical, cost, and schedule proposals for mass production"),
            PlanDeliverable(deliverable="Final Evaluation Report", timeline="After 6 months",
                            description="Comprehensive evaluation of all experimental results"),
        ],
    )


class ExperimentPlanEngine:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    @timed_async
    async def generate(
        self,
        material: Recommendation,
        current: CurrentMaterialComposition,
        requirements: Sequence[Requirement],
    ) -> ExperimentPlanResult:
        plan = await self._generate_with_llm(material, current, requirements)
        confidence = cfg.CONFIDENCE_HIGH
        if plan is None:
            plan = fallback_plan(material, current)
            confidence = cfg.CONFIDENCE_FALLBACK
        logger.info(f"Experiment plan for {material.material_name} ({confidence})")
        return ExperimentPlanResult(
            plan=plan,
            confidence=confidence,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

    async def _generate_with_llm(self, material, current, requirements):
        if not self.llm.configured:
            return None
        text = await self.llm.generate(
            build_plan_prompt(material, current, requirements),
            system_prompt=get_system_prompt("experiment_planner"),
            max_tokens=PLAN_MAX_TOKENS,
        )
        block = extract_json_block(text) if text else None
        if block is None:
            logger.warning("Experiment plan LLM returned no JSON — using template plan")
            return None
        try:
            return parse_tool_output("generate_experiment_plan", block)
        except ValueError as e:
            logger.warning(f"Experiment plan output invalid, using template plan: {e}")
            return None
