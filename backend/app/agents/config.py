"""
Pipeline configuration — single source of truth for scoring constants,
provenance labels, LLM routing, and fallback defaults.

Import from here in all engines rather than hardcoding values.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


# ── Catalog scoring ───────────────────────────────────────────────────────────

MATCH_SCORE_CEILING: float = 95.0
SUSTAINABILITY_SCORE_CEILING: float = 95.0
SUSTAINABILITY_BASE: float = 70.0
SUSTAINABILITY_PER_BIOMASS_PCT: float = 0.25

# Barrier match: required OTR below this AND candidate OTR below this
HIGH_BARRIER_OTR_LIMIT: float = 2.0
BARRIER_BONUS: int = 30

# Tensile match: |candidate - required| strictly below this
TENSILE_TOLERANCE: float = 20.0
TENSILE_BONUS: int = 25

BIODEGRADABLE_BONUS: int = 20
HIGH_BIOMASS_PCT: float = 50.0
HIGH_BIOMASS_BONUS: int = 15
LOW_CARBON_KG_CO2: float = 0.6
LOW_CARBON_BONUS: int = 10

# Consideration triggers
LOW_HEAT_RESISTANCE_C: float = 150.0
LOW_TENSILE_STRENGTH: float = 50.0


# ── Aggregation ───────────────────────────────────────────────────────────────

CATALOG_TOP_N: int = 3
AGGREGATE_MAX_RESULTS: int = 5
MAX_SYNTHESIZED_ENTRIES: int = 2
SYNTHETIC_MATCH_BASE: int = 80
SYNTHETIC_MATCH_STEP: int = 5
SYNTHETIC_SUSTAINABILITY_SCORE: int = 80

# Property values assumed for materials known only from external research
SYNTHETIC_DEFAULT_PROPERTIES: dict[str, object] = {
    "tensile_strength": 50.0,
    "elongation": 150.0,
    "oxygen_permeability": 2.0,
    "water_vapor_permeability": 2.0,
    "heat_resistance": 120.0,
    "recyclability": "Needs Review",
    "biodegradability": "Under Evaluation",
    "carbon_footprint": 0.8,
}

# Provenance labels
SOURCE_CATALOG = "Organic Polymer Database"
SOURCE_EXTERNAL = "External Research"
SOURCE_FALLBACK = "Fallback Data"
SOURCE_ERROR = "Fallback Data (Error Recovery)"

# Finding source labels
FINDING_SOURCE_SECTION = "External Deep Research"
FINDING_SOURCE_PATTERN = "External Deep Research (Pattern Match)"


# ── Recommendation synthesis ──────────────────────────────────────────────────

MAX_RECOMMENDATIONS: int = 3
PHYSICAL_BASE: float = 70.0
PHYSICAL_PER_TENSILE: float = 0.3
PHYSICAL_CEILING: float = 95.0
COST_BASE: int = 80
COST_RANK_DECAY: int = 5
SAFETY_DEFAULT: int = 90
SUPPLY_WITH_FINDING: int = 85
SUPPLY_WITHOUT_FINDING: int = 75
HIGH_SUSTAINABILITY_THRESHOLD: float = 80.0
LOW_CARBON_FEATURE_KG_CO2: float = 1.0

DATA_SOURCE_CATALOG = "Organic Polymer Database"
DATA_SOURCE_EXTERNAL = "External Research"
DATA_SOURCE_AI = "AI Deep Analysis"

# Envelope confidence levels
CONFIDENCE_HIGH = "high"
CONFIDENCE_LOW = "low"
CONFIDENCE_ERROR = "error"
CONFIDENCE_FALLBACK = "fallback"


# ── Prompt rendering ──────────────────────────────────────────────────────────

# Feature key -> (label, unit suffix) used when rendering requirements into prompts
FEATURE_PROMPT_LABELS: dict[str, tuple[str, str]] = {
    "tensile_strength":         ("Tensile Strength", "N/15mm"),
    "elongation":               ("Elongation", "%"),
    "impact_strength":          ("Impact Strength", "J"),
    "heat_seal_strength":       ("Heat Seal Strength", "N/15mm"),
    "oxygen_permeability":      ("Oxygen Permeability", "cc/m²·day·atm or less"),
    "water_vapor_permeability": ("Water Vapor Permeability", "g/m²·day or less"),
    "light_blocking":           ("Light Blocking", "% or more"),
    "heat_resistance":          ("Heat Resistance Temperature", "°C or higher"),
    "cold_resistance":          ("Cold Resistance Temperature", "°C or lower"),
}


# ── LLM routing ───────────────────────────────────────────────────────────────

RESEARCH_MODEL_DEFAULT = "openai/gpt-4-turbo-preview"
SYNTHESIS_MODEL_DEFAULT = "anthropic/claude-opus-4-20250514"
ANALYSIS_MODEL_DEFAULT = "anthropic/claude-sonnet-4-20250514"

EXTERNAL_SEARCH_TIMEOUT_S: float = 60.0


@dataclass(frozen=True)
class TextGenConfig:
    """
    Connection settings for one text-generation capability.

    ``credential is None`` is a valid configuration: the capability is simply
    unavailable and callers take their degraded path.
    """
    model: str
    credential: Optional[str] = None
    base_endpoint: Optional[str] = None
    fallback_model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 3000
    timeout_s: float = 60.0

    @property
    def configured(self) -> bool:
        return bool(self.credential)


@dataclass(frozen=True)
class AppConfig:
    research_llm: TextGenConfig
    synthesis_llm: TextGenConfig
    analysis_llm: TextGenConfig
    external_search_timeout_s: float = EXTERNAL_SEARCH_TIMEOUT_S
    log_level: str = "INFO"
    json_logs: bool = True
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config() -> AppConfig:
    """Build the application config from process environment variables."""
    fallback_model = os.getenv("LLM_FALLBACK_MODEL") or None
    anthropic_key = os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY") or None
    timeout_s = _float_env("EXTERNAL_SEARCH_TIMEOUT_S", EXTERNAL_SEARCH_TIMEOUT_S)

    research = TextGenConfig(
        model=os.getenv("RESEARCH_LLM_MODEL", RESEARCH_MODEL_DEFAULT),
        credential=os.getenv("OPENAI_API_KEY") or None,
        base_endpoint=os.getenv("RESEARCH_LLM_BASE_URL") or None,
        fallback_model=fallback_model,
        temperature=0.7,
        max_tokens=3000,
        timeout_s=timeout_s,
    )
    synthesis = TextGenConfig(
        model=os.getenv("SYNTHESIS_LLM_MODEL", SYNTHESIS_MODEL_DEFAULT),
        credential=anthropic_key,
        base_endpoint=os.getenv("SYNTHESIS_LLM_BASE_URL") or None,
        fallback_model=fallback_model,
        temperature=0.7,
        max_tokens=3000,
        timeout_s=timeout_s,
    )
    analysis = TextGenConfig(
        model=os.getenv("ANALYSIS_LLM_MODEL", ANALYSIS_MODEL_DEFAULT),
        credential=anthropic_key,
        base_endpoint=os.getenv("SYNTHESIS_LLM_BASE_URL") or None,
        fallback_model=fallback_model,
        temperature=0.3,
        max_tokens=1000,
        timeout_s=timeout_s,
    )

    cors_default = "http://localhost:3000,http://localhost:8000"
    cors = [o.strip() for o in os.getenv("CORS_ORIGINS", cors_default).split(",") if o.strip()]

    return AppConfig(
        research_llm=research,
        synthesis_llm=synthesis,
        analysis_llm=analysis,
        external_search_timeout_s=timeout_s,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_logs=os.getenv("LOG_FORMAT", "json").lower() != "text",
        cors_origins=cors,
    )
