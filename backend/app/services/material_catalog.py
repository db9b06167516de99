"""
Organic polymer catalog — static reference data for real packaging materials.

Process-wide constant table. Property units:
  tensile_strength MPa, elongation %, melting_point °C, density g/cm³,
  oxygen_permeability cc/m²·day·atm, water_vapor_permeability g/m²·day,
  carbon_footprint kg-CO2/kg.
"""
from app.models.material_schema import (
    CatalogMaterial,
    CatalogProperties,
    CatalogSustainability,
)


def _material(id, formula, name, type, properties, sustainability) -> CatalogMaterial:
    return CatalogMaterial(
        id=id,
        formula=formula,
        name=name,
        type=type,
        properties=CatalogProperties(**properties),
        sustainability=CatalogSustainability(**sustainability),
    )


MATERIAL_CATALOG: tuple[CatalogMaterial, ...] = (
    # ── Bioplastics ──────────────────────────────────────────────────────────
    _material(
        "bio-001", "PLA (C3H4O2)n", "Polylactic Acid", "bioplastic",
        dict(tensile_strength=65, elongation=150, melting_point=175, density=1.24,
             oxygen_permeability=1.8, water_vapor_permeability=2.5),
        dict(biodegradable=True, compostable=True, biomass_content=100, carbon_footprint=0.5),
    ),
    _material(
        "bio-002", "PHA (C4H6O2)n", "Polyhydroxyalkanoate", "bioplastic",
        dict(tensile_strength=40, elongation=200, melting_point=165, density=1.25,
             oxygen_permeability=2.3, water_vapor_permeability=3.0),
        dict(biodegradable=True, compostable=True, biomass_content=100, carbon_footprint=0.4),
    ),
    _material(
        "bio-003", "PBS (C8H12O4)n", "Polybutylene Succinate", "bioplastic",
        dict(tensile_strength=55, elongation=300, melting_point=115, density=1.26,
             oxygen_permeability=2.0, water_vapor_permeability=2.8),
        dict(biodegradable=True, compostable=False, biomass_content=50, carbon_footprint=0.7),
    ),
    # ── Recycled polymers ────────────────────────────────────────────────────
    _material(
        "rec-001", "rPET (C10H8O4)n", "Recycled PET", "recycled",
        dict(tensile_strength=85, elongation=120, melting_point=250, density=1.38,
             oxygen_permeability=0.8, water_vapor_permeability=1.5),
        dict(biodegradable=False, recyclable=True, recycled_content=100, carbon_footprint=0.6),
    ),
    _material(
        "rec-002", "rPE (C2H4)n", "Recycled Polyethylene", "recycled",
        dict(tensile_strength=45, elongation=400, melting_point=135, density=0.95,
             oxygen_permeability=3.5, water_vapor_permeability=0.5),
        dict(biodegradable=False, recyclable=True, recycled_content=100, carbon_footprint=0.5),
    ),
    # ── Bio-based polymers ───────────────────────────────────────────────────
    _material(
        "bio-pe-001", "Bio-PE (C2H4)n", "Bio-Polyethylene", "bio-based",
        dict(tensile_strength=50, elongation=450, melting_point=135, density=0.96,
             oxygen_permeability=3.2, water_vapor_permeability=0.4),
        dict(biodegradable=False, recyclable=True, biomass_content=95, carbon_footprint=0.3),
    ),
    _material(
        "bio-pet-001", "Bio-PET (C10H8O4)n", "Bio-PET", "bio-based",
        dict(tensile_strength=90, elongation=130, melting_point=255, density=1.39,
             oxygen_permeability=0.7, water_vapor_permeability=1.4),
        dict(biodegradable=False, recyclable=True, biomass_content=30, carbon_footprint=0.8),
    ),
    # ── Cellulose-based ──────────────────────────────────────────────────────
    _material(
        "cel-001", "CNF (C6H10O5)n", "Cellulose Nanofiber", "cellulose",
        dict(tensile_strength=150, elongation=80, melting_point=180, density=1.5,
             oxygen_permeability=0.3, water_vapor_permeability=4.0),
        dict(biodegradable=True, compostable=True, biomass_content=100, carbon_footprint=0.2),
    ),
)


def get_material_catalog() -> tuple[CatalogMaterial, ...]:
    return MATERIAL_CATALOG
