"""
test_api_endpoints.py — HTTP surface tests via FastAPI's TestClient.

Every test runs with a configuration that has no LLM credentials, so the
deterministic paths are exercised; engines that need canned LLM answers are
injected through ``app.dependency_overrides``.
"""

import json
import pytest
from fastapi.testclient import TestClient

from app.agents.config import AppConfig, TextGenConfig
from app.api.deps import get_config, get_spec_analysis_engine
from app.main import app
from app.services.spec_analysis_engine import SpecAnalysisEngine


def _offline_config():
    return AppConfig(
        research_llm=TextGenConfig(model="openai/research"),
        synthesis_llm=TextGenConfig(model="anthropic/synthesis"),
        analysis_llm=TextGenConfig(model="anthropic/analysis"),
    )


@pytest.fixture
def client():
    app.dependency_overrides[get_config] = _offline_config
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def body(current_material, sample_requirements):
    return {
        "current_material": current_material.model_dump(),
        "requirements": [r.model_dump() for r in sample_requirements],
    }


# ===========================================================================
# Class 1: Service endpoints
# ===========================================================================

class TestServiceEndpoints:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "active"
        assert data["version"] == "1.0.0"
        assert isinstance(data["synthesis_llm_configured"], bool)

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"
        assert float(resp.headers["X-Process-Time"]) >= 0
        assert resp.headers["X-Content-Type-Options"] == "nosniff"

    def test_request_id_generated(self, client):
        resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 36

    def test_metrics_after_recommendation(self, client, body):
        client.post("/api/materials/recommend", json=body)
        data = client.get("/metrics").json()
        assert data["runs_completed"] == 1
        assert data["uptime_seconds"] >= 0
        assert "memory_usage_mb" in data
        assert "catalog" in data["stage_avg_durations_ms"]


# ===========================================================================
# Class 2: Materials routes
# ===========================================================================

class TestMaterialsRoutes:

    def test_db_search(self, client, body):
        resp = client.post("/api/materials/db-search", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["total_count"] == 8
        assert len(data["materials"]) == 5
        assert data["materials"][0]["name"] == "Polylactic Acid"
        assert data["materials"][0]["match_score"] == 80
        assert data["data_source"] == "Organic Polymer Database"

    def test_db_search_empty_body(self, client):
        resp = client.post("/api/materials/db-search", json={})
        assert resp.status_code == 200
        assert resp.json()["total_count"] == 8

    def test_research_unconfigured_is_503(self, client, body):
        resp = client.post("/api/materials/research", json=body)
        assert resp.status_code == 503

    def test_aggregated_search_without_research(self, client, body):
        resp = client.post("/api/materials/search", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert [m["name"] for m in data["materials"]] == [
            "Polylactic Acid", "Cellulose Nanofiber", "Bio-Polyethylene",
        ]
        assert data["data_source"] == "Organic Polymer Database"
        assert data["catalog_count"] == 8
        assert data["external_count"] == 0

    def test_recommend_fallback(self, client, body):
        resp = client.post("/api/materials/recommend", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert 1 <= len(data["recommendations"]) <= 3
        assert data["analysis_details"]["confidence_level"] == "fallback"
        assert data["analysis_details"]["db_search_result_count"] == 8
        for rec in data["recommendations"]:
            assert 0 <= rec["total_score"] <= 100
            assert rec["grade"] in ("A", "B", "C", "D")

    def test_invalid_requirement_is_422(self, client):
        resp = client.post("/api/materials/db-search", json={"requirements": [{"value": "65"}]})
        assert resp.status_code == 422


# ===========================================================================
# Class 3: Analysis routes
# ===========================================================================

class TestAnalysisRoutes:

    def test_experiment_plan_fallback(self, client, body):
        material = {
            "material_name": "Polylactic Acid",
            "composition_parts": ["PLA (C3H4O2)n"],
            "scores": {"physical": 90, "environmental": 95, "cost": 80, "safety": 90, "supply": 75},
            "total_score": 86,
        }
        resp = client.post("/api/experiment-plan", json={**body, "material": material})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["metadata"]["confidence"] == "fallback"
        assert data["experiment_plan"]["overview"]["title"] == "Polylactic Acid Development Experiment Plan"
        assert len(data["experiment_plan"]["phases"]) == 3

    def test_experiment_plan_requires_material(self, client, body):
        assert client.post("/api/experiment-plan", json=body).status_code == 422

    def test_analyze_unconfigured_is_503(self, client):
        resp = client.post("/api/requirements/analyze", json={"text": "Snack bag spec"})
        assert resp.status_code == 503

    def test_analyze_empty_text_is_422(self, client):
        assert client.post("/api/requirements/analyze", json={"text": ""}).status_code == 422

    def test_analyze_success(self, client, stub_llm_factory):
        answer = json.dumps({
            "requirements": [
                {"name": "Tensile Strength", "value": 60, "unit": "MPa", "importance": "HIGH"},
                {"name": "Oxygen Barrier", "value": "< 1", "importance": "critical"},
            ],
            "materials": {"composition": "PET/Al/PE", "properties": ["High barrier"],
                          "analysisConfidence": "medium"},
        })
        app.dependency_overrides[get_spec_analysis_engine] = lambda: SpecAnalysisEngine(stub_llm_factory([answer]))
        resp = client.post("/api/requirements/analyze", json={"text": "Snack bag spec"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["requirements"][0] == {
            "name": "Tensile Strength", "value": "60", "unit": "MPa", "importance": "high",
        }
        assert data["requirements"][1]["importance"] == "medium"
        assert data["current_material"] == {"composition": "PET/Al/PE", "properties": ["High barrier"]}
        assert data["analysis_confidence"] == "medium"

    def test_analyze_unusable_answer_is_502(self, client, stub_llm_factory):
        app.dependency_overrides[get_spec_analysis_engine] = (
            lambda: SpecAnalysisEngine(stub_llm_factory(["I could not find any requirements."]))
        )
        resp = client.post("/api/requirements/analyze", json={"text": "Snack bag spec"})
        assert resp.status_code == 502

    def test_grading_criteria(self, client):
        data = client.get("/api/grading-criteria").json()
        assert [g["grade"] for g in data["grades"]] == ["A", "B", "C", "D"]
        assert data["grades"][0]["score_range"] == {"min": 85, "max": 100}
        assert sum(data["weights"].values()) == 100
