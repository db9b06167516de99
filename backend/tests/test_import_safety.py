"""
test_import_safety.py — Import and layering checks.

Verifies that:
  1. Every engine, model, and API module imports cleanly with no network
     access and no credentials in the environment.
  2. Deterministic engines (catalog scoring, requirement extraction, grading)
     stay free of LLM and HTTP dependencies so the fallback paths always work.
  3. Schema modules do not import services.
"""

import importlib
import inspect
import pytest


_SERVICE_MODULES = [
    "app.services.requirement_extractor",
    "app.services.material_catalog",
    "app.services.catalog_engine",
    "app.services.llm_client",
    "app.services.research_engine",
    "app.services.aggregation_engine",
    "app.services.recommendation_engine",
    "app.services.experiment_plan_engine",
    "app.services.spec_analysis_engine",
    "app.services.grading_criteria",
    "app.services.perf_monitor",
    "app.services.logging_config",
    "app.services.middleware",
]

_MODEL_MODULES = [
    "app.agents.config",
    "app.agents.tool_schemas",
    "app.models.material_schema",
]

_API_MODULES = [
    "app.api.deps",
    "app.api.materials_routes",
    "app.api.analysis_routes",
]


class TestModuleImports:

    @pytest.mark.parametrize("module_path", _SERVICE_MODULES + _MODEL_MODULES + _API_MODULES)
    def test_module_imports(self, module_path):
        mod = importlib.import_module(module_path)
        assert mod is not None, f"Module {module_path} is None after import"


class TestLayering:
    """Deterministic paths must not depend on the LLM stack."""

    @pytest.mark.parametrize("module_path", [
        "app.services.catalog_engine",
        "app.services.requirement_extractor",
        "app.services.material_catalog",
        "app.services.grading_criteria",
    ])
    def test_deterministic_engine_has_no_llm_dependency(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "litellm" not in src
        assert "llm_client" not in src
        assert "fastapi" not in src

    @pytest.mark.parametrize("module_path", _MODEL_MODULES)
    def test_schema_modules_do_not_import_services(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "app.services" not in src
