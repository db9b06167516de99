"""
test_catalog_engine.py — Unit tests for CatalogEngine additive scoring.

Tests cover:
  - Tensile match (+25) and high-barrier match (+30) bonuses
  - Biodegradable bonus driven by the current material's properties
  - Full ranking for a representative requirement set
  - Output size, ordering, score bounds, idempotence
  - Unparseable requirement values score +0 rather than failing
  - Derived labels, advantages, and considerations

All tests are pure unit tests; no network or LLM access required.
"""

import math
import pytest

from app.models.material_schema import (
    CurrentMaterialComposition,
    ExtractedRequirements,
    Requirement,
)
from app.services.catalog_engine import CatalogEngine, needs_biodegradable
from app.services.material_catalog import MATERIAL_CATALOG, get_material_catalog
from app.services.requirement_extractor import extract_requirements


_PLAIN = CurrentMaterialComposition(composition="PET/CPP", properties=["Transparent"])


def _by_name(results, name):
    return next(m for m in results if m.name == name)


def _catalog_entry(name):
    return next(m for m in MATERIAL_CATALOG if m.name == name)


# ===========================================================================
# Class 1: Individual bonuses
# ===========================================================================

class TestMatchBonuses:

    def test_tensile_match_awards_25(self, catalog_engine):
        """Required tensile 65 against PLA (65): difference 0 < 20."""
        reqs = extract_requirements([Requirement(name="引張強度", value="65", importance="high")])
        pla = _catalog_entry("Polylactic Acid")
        with_req = catalog_engine.match_score(pla, reqs, False, False)
        without_req = catalog_engine.match_score(pla, ExtractedRequirements(), False, False)
        assert with_req - without_req == 25

    def test_tensile_tolerance_is_strict(self, catalog_engine):
        """rPET (85) is exactly 20 away from 65: no bonus."""
        reqs = ExtractedRequirements(tensile_strength=65)
        rpet = _catalog_entry("Recycled PET")
        assert catalog_engine.match_score(rpet, reqs, False, False) == 0

    def test_barrier_bonus_applied(self, catalog_engine):
        """Required OTR 1.5 (< 2) and PLA OTR 1.8 (< 2): +30."""
        reqs = ExtractedRequirements(oxygen_permeability=1.5)
        results = catalog_engine.score_materials(reqs, _PLAIN)
        # PLA: barrier 30 + biomass 15 + low carbon 10
        assert _by_name(results, "Polylactic Acid").match_score == 55

    def test_barrier_bonus_needs_high_barrier_requirement(self, catalog_engine):
        reqs = ExtractedRequirements(oxygen_permeability=5.0)
        results = catalog_engine.score_materials(reqs, _PLAIN)
        assert _by_name(results, "Polylactic Acid").match_score == 25

    def test_candidate_at_limit_gets_no_barrier_bonus(self, catalog_engine):
        """PBS OTR is exactly 2.0."""
        reqs = ExtractedRequirements(oxygen_permeability=1.0)
        results = catalog_engine.score_materials(reqs, _PLAIN)
        assert _by_name(results, "Polybutylene Succinate").match_score == 0

    def test_biodegradable_bonus_from_current_properties(self, catalog_engine, biodegradable_current_material):
        reqs = ExtractedRequirements()
        plain = _by_name(catalog_engine.score_materials(reqs, _PLAIN), "Polyhydroxyalkanoate")
        wanted = _by_name(
            catalog_engine.score_materials(reqs, biodegradable_current_material),
            "Polyhydroxyalkanoate",
        )
        assert wanted.match_score - plain.match_score == 20

    def test_negated_property_gives_no_bonus(self, catalog_engine):
        laminate = CurrentMaterialComposition(composition="PET/Al/PE", properties=["High barrier", "Non-biodegradable"])
        results = catalog_engine.score_materials(ExtractedRequirements(), laminate)
        assert _by_name(results, "Polylactic Acid").match_score == 25
        assert _by_name(results, "Polybutylene Succinate").match_score == 0

    @pytest.mark.parametrize("prop, expected", [
        ("Biodegradable", True),
        ("fully BIODEGRADABLE film", True),
        ("生分解性", True),
        ("Recyclable", False),
        ("Non-biodegradable", False),
        ("not biodegradable", False),
        ("非生分解", False),
    ])
    def test_needs_biodegradable(self, prop, expected):
        current = CurrentMaterialComposition(composition="X", properties=[prop])
        assert needs_biodegradable(current) is expected


# ===========================================================================
# Class 2: Ranking and invariants
# ===========================================================================

class TestRanking:

    def test_representative_ranking(self, catalog_engine, sample_requirements, current_material):
        reqs = extract_requirements(sample_requirements)
        results = catalog_engine.score_materials(reqs, current_material)
        assert [(m.name, m.match_score) for m in results] == [
            ("Polylactic Acid", 80),
            ("Cellulose Nanofiber", 55),
            ("Bio-Polyethylene", 50),
            ("Recycled PET", 30),
            ("Bio-PET", 30),
            ("Polyhydroxyalkanoate", 25),
            ("Polybutylene Succinate", 25),
            ("Recycled Polyethylene", 10),
        ]

    def test_output_covers_whole_catalog_sorted(self, catalog_engine, sample_requirements, current_material):
        results = catalog_engine.score_materials(extract_requirements(sample_requirements), current_material)
        assert len(results) == len(get_material_catalog())
        scores = [m.match_score for m in results]
        assert scores == sorted(scores, reverse=True)

    def test_scores_within_bounds(self, catalog_engine, biodegradable_current_material):
        reqs = ExtractedRequirements(tensile_strength=60, oxygen_permeability=1.0)
        for m in catalog_engine.score_materials(reqs, biodegradable_current_material):
            assert 0 <= m.match_score <= 95
            assert 0 <= m.sustainability_score <= 95

    def test_match_score_capped_at_95(self, catalog_engine, biodegradable_current_material):
        # PLA: 30 + 25 + 20 + 15 + 10 = 100 before the cap
        reqs = ExtractedRequirements(tensile_strength=65, oxygen_permeability=1.0)
        results = catalog_engine.score_materials(reqs, biodegradable_current_material)
        assert _by_name(results, "Polylactic Acid").match_score == 95

    def test_idempotent(self, catalog_engine, sample_requirements, current_material):
        reqs = extract_requirements(sample_requirements)
        first = catalog_engine.score_materials(reqs, current_material)
        second = catalog_engine.score_materials(reqs, current_material)
        assert [m.model_dump() for m in first] == [m.model_dump() for m in second]

    def test_unparseable_value_scores_zero_bonus(self, catalog_engine):
        reqs = extract_requirements([Requirement(name="Tensile Strength", value="strong")])
        baseline = catalog_engine.score_materials(ExtractedRequirements(), _PLAIN)
        results = catalog_engine.score_materials(reqs, _PLAIN)
        assert [m.match_score for m in results] == [m.match_score for m in baseline]

    def test_nan_requirement_never_matches(self, catalog_engine):
        reqs = ExtractedRequirements.model_construct(tensile_strength=math.nan, oxygen_permeability=math.nan)
        results = catalog_engine.score_materials(reqs, _PLAIN)
        assert _by_name(results, "Polylactic Acid").match_score == 25

    def test_empty_catalog(self):
        assert CatalogEngine(catalog=[]).score_materials(ExtractedRequirements(), _PLAIN) == []


# ===========================================================================
# Class 3: Derived fields
# ===========================================================================

class TestDerivedFields:

    @pytest.fixture
    def results(self, catalog_engine):
        return catalog_engine.score_materials(ExtractedRequirements(), _PLAIN)

    def test_sustainability_score_from_biomass(self, results):
        assert _by_name(results, "Polylactic Acid").sustainability_score == 95
        assert _by_name(results, "Polybutylene Succinate").sustainability_score == 82.5
        assert _by_name(results, "Bio-PET").sustainability_score == 77.5
        assert _by_name(results, "Recycled PET").sustainability_score == 70

    def test_labels(self, results):
        pla = _by_name(results, "Polylactic Acid").properties
        assert pla.recyclability == "Biodegradable"
        assert pla.biodegradability == "Compostable"
        assert pla.heat_resistance == 175

        pbs = _by_name(results, "Polybutylene Succinate").properties
        assert pbs.biodegradability == "Biodegradable"

        rpet = _by_name(results, "Recycled PET").properties
        assert rpet.recyclability == "Fully Recyclable"
        assert rpet.biodegradability == "Non-biodegradable"

    def test_advantages(self, results):
        assert _by_name(results, "Polylactic Acid").advantages == [
            "Material Type: Bioplastic",
            "Biodegradable",
            "Biomass Content: 100%",
            "CO2 Emissions: 0.5 kg-CO2/kg",
            "Density: 1.24 g/cm³",
        ]
        assert _by_name(results, "Recycled PET").advantages[:3] == [
            "Material Type: Recycled Material",
            "Recyclable",
            "Biomass Content: 0%",
        ]

    def test_considerations(self, results):
        assert _by_name(results, "Polybutylene Succinate").considerations == ["Low heat resistance (<150°C)"]
        assert _by_name(results, "Recycled Polyethylene").considerations == [
            "Low heat resistance (<150°C)",
            "Potentially low strength",
        ]
        assert _by_name(results, "Polylactic Acid").considerations == ["Fully biomass-derived"]
        assert _by_name(results, "Recycled PET").considerations == []
