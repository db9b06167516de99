"""Catalog Engine — scores every catalog material against extracted requirements."""
import re
import math
import logging
from typing import Iterable, Optional

from app.agents import config as cfg
from app.models.material_schema import (
    CatalogMaterial,
    CurrentMaterialComposition,
    ExtractedRequirements,
    MaterialProperties,
    ScoredMaterial,
)
from app.services.material_catalog import get_material_catalog
from app.services.perf_monitor import timed

logger = logging.getLogger("packmat-catalog")

TYPE_LABELS = {
    "bioplastic": "Bioplastic",
    "recycled": "Recycled Material",
    "bio-based": "Bio-based Material",
    "cellulose": "Cellulose-based Material",
}

_BIODEGRADABLE_MARKERS = ("biodegradab", "生分解")
_NEGATED_BIODEGRADABLE = re.compile(r"\b(?:non|not)[\s-]*biodegradab|非生分解")


def _fmt(value: float) -> str:
    """Render 100.0 as '100' and 0.5 as '0.5'."""
    return str(int(value)) if float(value).is_integer() else str(value)


def _below(value: Optional[float], limit: float) -> bool:
    return value is not None and not math.isnan(value) and value < limit


def _within(candidate: float, required: Optional[float], tolerance: float) -> bool:
    # A missing requirement never matches
    if required is None or math.isnan(required):
        return False
    return abs(candidate - required) < tolerance


def needs_biodegradable(current: CurrentMaterialComposition) -> bool:
    """A positive biodegradability mention; "Non-biodegradable" and the like do not count."""
    for prop in current.properties or []:
        lowered = prop.lower()
        if _NEGATED_BIODEGRADABLE.search(lowered):
            continue
        if any(marker in lowered for marker in _BIODEGRADABLE_MARKERS):
            return True
    return False


class CatalogEngine:
    """
    Additive point scoring over the static organic polymer catalog.

    Pure computation: no I/O, no shared state. Output covers the whole
    catalog, sorted by match score (stable on catalog order for ties).
    """

    def __init__(self, catalog: Optional[Iterable[CatalogMaterial]] = None):
        self.catalog = tuple(catalog) if catalog is not None else get_material_catalog()

    @timed
    def score_materials(
        self,
        requirements: ExtractedRequirements,
        current: CurrentMaterialComposition,
    ) -> list[ScoredMaterial]:
        high_barrier = _below(requirements.oxygen_permeability, cfg.HIGH_BARRIER_OTR_LIMIT)
        biodegradable_wanted = needs_biodegradable(current)

        results = [
            self._score_one(material, requirements, high_barrier, biodegradable_wanted)
            for material in self.catalog
        ]
        results.sort(key=lambda m: m.match_score, reverse=True)

        if results:
            top = ", ".join(m.name for m in results[:3])
            logger.info(
                f"Catalog scoring: {len(results)} materials, top match {results[0].match_score:.0f} ({top})"
            )
        else:
            logger.info("Catalog scoring: catalog is empty")
        return results

    def match_score(
        self,
        material: CatalogMaterial,
        requirements: ExtractedRequirements,
        high_barrier: bool,
        biodegradable_wanted: bool,
    ) -> float:
        props = material.properties
        sus = material.sustainability
        score = 0

        if high_barrier and props.oxygen_permeability < cfg.HIGH_BARRIER_OTR_LIMIT:
            score += cfg.BARRIER_BONUS
        if _within(props.tensile_strength, requirements.tensile_strength, cfg.TENSILE_TOLERANCE):
            score += cfg.TENSILE_BONUS
        if sus.biodegradable and biodegradable_wanted:
            score += cfg.BIODEGRADABLE_BONUS
        if sus.biomass_content and sus.biomass_content > cfg.HIGH_BIOMASS_PCT:
            score += cfg.HIGH_BIOMASS_BONUS
        if sus.carbon_footprint < cfg.LOW_CARBON_KG_CO2:
            score += cfg.LOW_CARBON_BONUS

        return min(cfg.MATCH_SCORE_CEILING, score)

    @staticmethod
    def sustainability_score(material: CatalogMaterial) -> float:
        biomass = material.sustainability.biomass_content or 0
        return min(
            cfg.SUSTAINABILITY_SCORE_CEILING,
            cfg.SUSTAINABILITY_BASE + biomass * cfg.SUSTAINABILITY_PER_BIOMASS_PCT,
        )

    def _score_one(
        self,
        material: CatalogMaterial,
        requirements: ExtractedRequirements,
        high_barrier: bool,
        biodegradable_wanted: bool,
    ) -> ScoredMaterial:
        props = material.properties
        sus = material.sustainability

        if sus.recyclable:
            recyclability = "Fully Recyclable"
        elif sus.biodegradable:
            recyclability = "Biodegradable"
        else:
            recyclability = "Needs Review"

        if sus.biodegradable:
            biodegradability = "Compostable" if sus.compostable else "Biodegradable"
        else:
            biodegradability = "Non-biodegradable"

        return ScoredMaterial(
            name=material.name,
            composition=material.formula,
            properties=MaterialProperties(
                tensile_strength=props.tensile_strength,
                elongation=props.elongation,
                oxygen_permeability=props.oxygen_permeability,
                water_vapor_permeability=props.water_vapor_permeability,
                heat_resistance=props.melting_point,
                recyclability=recyclability,
                biodegradability=biodegradability,
                carbon_footprint=sus.carbon_footprint,
            ),
            sustainability_score=self.sustainability_score(material),
            match_score=self.match_score(material, requirements, high_barrier, biodegradable_wanted),
            advantages=self._advantages(material),
            considerations=self._considerations(material),
        )

    @staticmethod
    def _advantages(material: CatalogMaterial) -> list[str]:
        sus = material.sustainability
        return [
            f"Material Type: {TYPE_LABELS.get(material.type, material.type)}",
            "Biodegradable" if sus.biodegradable else "Recyclable",
            f"Biomass Content: {_fmt(sus.biomass_content or 0)}%",
            f"CO2 Emissions: {_fmt(sus.carbon_footprint)} kg-CO2/kg",
            f"Density: {_fmt(material.properties.density)} g/cm³",
        ]

    @staticmethod
    def _considerations(material: CatalogMaterial) -> list[str]:
        props = material.properties
        candidates = [
            "Low heat resistance (<150°C)" if props.melting_point < cfg.LOW_HEAT_RESISTANCE_C else None,
            "Potentially low strength" if props.tensile_strength < cfg.LOW_TENSILE_STRENGTH else None,
            "Fully biomass-derived" if material.sustainability.biomass_content == 100 else None,
        ]
        return [c for c in candidates if c is not None]
