"""Requirement Extractor — free-text requirement entries to a fixed numeric feature set."""
import math
import re
import logging
from typing import Iterable, Optional

from app.models.material_schema import ExtractedRequirements, Requirement

logger = logging.getLogger("packmat-extractor")

# Ordered (feature, substrings). First feature whose substring appears in the
# requirement name wins; matching is case-insensitive.
FEATURE_PATTERNS: list[tuple[str, tuple[str, ...]]] = [
    ("tensile_strength",         ("tensile strength", "引張強度")),
    ("elongation",               ("elongation", "伸び率")),
    ("impact_strength",          ("impact strength", "衝撃強度")),
    ("heat_seal_strength",       ("heat seal strength", "ヒートシール強度")),
    ("oxygen_permeability",      ("oxygen permeability", "oxygen transmission", "酸素透過")),
    ("water_vapor_permeability", ("water vapor permeability", "water vapor transmission", "水蒸気透過")),
    ("light_blocking",           ("light blocking", "遮光")),
    ("heat_resistance",          ("heat resistance", "耐熱")),
    ("cold_resistance",          ("cold resistance", "耐寒")),
]

# Leading numeric prefix, as accepted by JavaScript's parseFloat
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_float(raw: str) -> float:
    """
    Parse the leading numeric prefix of ``raw``.

    Returns NaN when no numeric prefix exists ("abc", ">100", "").
    """
    text = (raw or "").strip()
    if text.startswith(("Infinity", "+Infinity")):
        return math.inf
    if text.startswith("-Infinity"):
        return -math.inf
    match = _LEADING_FLOAT.match(text)
    if not match:
        return math.nan
    return float(match.group(0))


def match_feature(name: str) -> Optional[str]:
    """Return the feature key a requirement name refers to, or None."""
    lowered = (name or "").lower()
    for feature, needles in FEATURE_PATTERNS:
        if any(needle in lowered for needle in needles):
            return feature
    return None


def extract_requirements(requirements: Iterable[Requirement]) -> ExtractedRequirements:
    """
    Build the fixed-schema feature set from a collection of requirements.

    Unmatched names are dropped. Values without a finite numeric prefix are
    treated as absent so no downstream comparison ever sees NaN. When two
    requirements map to the same feature the later one wins.
    """
    extracted: dict[str, float] = {}
    for req in requirements:
        feature = match_feature(req.name)
        if feature is None:
            logger.warning(f"Requirement '{req.name}' matches no known feature — ignored")
            continue
        value = parse_float(req.value)
        if not math.isfinite(value):
            logger.warning(f"Requirement '{req.name}' has non-numeric value '{req.value}' — ignored")
            extracted.pop(feature, None)
            continue
        extracted[feature] = value

    return ExtractedRequirements(**extracted)
