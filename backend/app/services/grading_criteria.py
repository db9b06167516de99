"""
Material grading rubric (grades A-D).

The grade table drives score display; the detailed rubric text is embedded
in the synthesis and experiment-plan prompts so the model scores on the
same scale.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class GradeBand:
    grade: str
    label: str
    description: str
    min_score: int
    max_score: int

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


GRADING_CRITERIA: tuple[GradeBand, ...] = (
    GradeBand(
        "A", "Excellent",
        "Material with outstanding performance and sustainability. Highly rated at the practical level.",
        85, 100,
    ),
    GradeBand(
        "B", "Good",
        "Material with good performance and sustainability. Promising for practical application.",
        70, 84,
    ),
    GradeBand(
        "C", "Fair",
        "Material with standard performance and sustainability. Has room for improvement.",
        55, 69,
    ),
    GradeBand(
        "D", "Needs Improvement",
        "Material with significant issues in performance and sustainability. Requires major improvement.",
        0, 54,
    ),
)

# Category weights in percent, applied when the model computes a total
CATEGORY_WEIGHTS: dict[str, int] = {
    "performance_match": 30,
    "sustainability": 35,
    "practicality": 20,
    "safety": 10,
    "future_potential": 5,
}


def score_to_grade(score: float) -> GradeBand:
    """Band whose inclusive range contains ``score``; D when none does (e.g. 84.5)."""
    for band in GRADING_CRITERIA:
        if band.contains(score):
            return band
    return GRADING_CRITERIA[-1]


DETAILED_GRADING_CRITERIA = """
# Material Grading Criteria (Grades A-D)

## Grade A (85-100): Excellent
- **Performance**: Significantly exceeds required specifications
- **Sustainability**: High recyclability, low environmental impact, strong contribution to carbon neutrality
- **Practicality**: Easy processing with existing equipment, cost-competitive
- **Safety**: Certified for high safety, applicable to food packaging
- **Future Potential**: Already adopted in the market, expected to spread further

## Grade B (70-84): Good
- **Performance**: Meets requirements, with some superior properties
- **Sustainability**: Good recyclability and environmental benefits
- **Practicality**: Requires partial equipment modification, reasonable cost
- **Safety**: Basic safety certifications obtained
- **Future Potential**: Development progressing toward practical use

## Grade C (55-69): Fair
- **Performance**: Meets minimum requirements, but needs improvement
- **Sustainability**: Lower impact than conventional materials, but limited potential
- **Practicality**: Requires investment and process changes, cost concerns
- **Safety**: Basic safety ensured, but further validation needed
- **Future Potential**: At R&D stage, commercialization timeline unclear

## Grade D (0-54): Needs Improvement
- **Performance**: Fails to meet requirements or significantly underperforms
- **Sustainability**: Limited environmental benefits
- **Practicality**: Requires major investment, lacks cost competitiveness
- **Safety**: Safety concerns present, additional certification needed
- **Future Potential**: At basic research stage, no clear path to commercialization

## Weighting of Evaluation Items
1. **Performance Match** (30%): Alignment with required specifications
2. **Sustainability Score** (35%): Environmental impact, recyclability
3. **Practicality** (20%): Cost, processability, supply stability
4. **Safety** (10%): Food safety, regulatory compliance
5. **Future Potential** (5%): Technology maturity, market adoption

Based on these criteria, each material should be comprehensively evaluated and assigned a grade from A to D.
"""
