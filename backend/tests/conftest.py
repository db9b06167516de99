"""
conftest.py — Shared pytest fixtures for the packaging materials advisor test suite.

No network fixtures are defined here. LLM access is replaced by the in-memory
``StubLLM`` below (or by monkeypatching ``litellm.acompletion`` in the client
tests), so every test runs offline.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


class StubLLM:
    """
    Stand-in for LLMClient: returns canned responses in order and records
    every prompt it was given. ``None`` entries model an unavailable call.
    """

    def __init__(self, responses=None, configured=True):
        self.responses = list(responses or [])
        self._configured = configured
        self.prompts = []

    @property
    def configured(self):
        return self._configured

    async def generate(self, prompt, system_prompt=None, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        if not self.responses:
            return None
        return self.responses.pop(0)


@pytest.fixture
def stub_llm_factory():
    return StubLLM


@pytest.fixture(autouse=True)
def reset_perf_tracker():
    """Keep the process-wide PerformanceTracker isolated between tests."""
    from app.services.perf_monitor import tracker
    tracker.reset()
    yield
    tracker.reset()


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def catalog_engine():
    """CatalogEngine over the built-in organic polymer catalog (stateless)."""
    from app.services.catalog_engine import CatalogEngine
    return CatalogEngine()


# ---------------------------------------------------------------------------
# Shared sample inputs
# ---------------------------------------------------------------------------

@pytest.fixture
def current_material():
    """Typical three-layer snack film being replaced."""
    from app.models.material_schema import CurrentMaterialComposition
    return CurrentMaterialComposition(
        composition="PET(12μm)/VMPET(12μm)/CPP(30μm)",
        properties=["High barrier", "Light blocking", "Heat sealable"],
    )


@pytest.fixture
def biodegradable_current_material():
    from app.models.material_schema import CurrentMaterialComposition
    return CurrentMaterialComposition(
        composition="PLA(20μm)/PBS(30μm)",
        properties=["Biodegradable", "Compostable"],
    )


@pytest.fixture
def sample_requirements():
    from app.models.material_schema import Requirement
    return [
        Requirement(name="引張強度", value="65", unit="N/15mm", importance="high"),
        Requirement(name="Oxygen Permeability", value="1.5", unit="cc/m²·day·atm", importance="high"),
        Requirement(name="Heat Resistance", value="120", unit="°C", importance="medium"),
    ]


@pytest.fixture
def research_text():
    """A deep-research answer in the numbered-section layout the prompt asks for."""
    return """Here is my research summary.

1. Top 3 Recommended Materials
   - Material Name: PLA (Polylactic Acid)
   - Manufacturer: NatureWorks
   - References: [Advances in PLA films, NatureWorks, 2022]
   - Material Name: Cellulose Nanofiber Composite
   - Manufacturer: Nippon Paper
   - References: [CNF barrier coatings, Nippon Paper Research, 2021]

2. Technology Trends
   - Mono-material PE laminates for recyclability
   - Bio-based barrier coatings
   Growing adoption overall.

3. Implementation Considerations
   - Higher raw material cost
   - Limited industrial composting infrastructure

4. Reference List
   "Biodegradable packaging review" (Smith J., 2023)
   Barrier films outlook, European Bioplastics report, 2022
   See https://www.natureworksllc.com/products. for details
   Also https://example.org/data
"""
