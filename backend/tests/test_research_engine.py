"""
test_research_engine.py — Tests for deep-research prompting and best-effort
parsing of unstructured research answers.

Tests cover:
  - Section detection (materials, trends, considerations, references)
  - Inline citations on material findings, reference-list line formats
  - Pattern-matched material names, exact-name dedup, word boundaries
  - URL attachment to citations and online-resource citations
  - Degenerate input never raises
  - ResearchEngine unavailable paths and custom query override
"""

import asyncio

from app.models.material_schema import (
    Citation,
    CurrentMaterialComposition,
    ExtractedRequirements,
    ExternalFinding,
)
from app.services.research_engine import (
    ResearchEngine,
    attach_urls,
    build_research_prompt,
    find_pattern_materials,
    parse_citation_lines,
    parse_research_text,
    render_requirements,
    split_sections,
)


# ===========================================================================
# Class 1: Prompt rendering
# ===========================================================================

class TestPrompt:

    def test_only_present_requirements_rendered(self):
        lines = render_requirements(ExtractedRequirements(tensile_strength=65, heat_resistance=120.5))
        assert lines == [
            "Tensile Strength: 65 N/15mm",
            "Heat Resistance Temperature: 120.5 °C or higher",
        ]

    def test_prompt_contains_current_material(self, current_material):
        prompt = build_research_prompt(ExtractedRequirements(oxygen_permeability=1.5), current_material)
        assert "PET(12μm)/VMPET(12μm)/CPP(30μm)" in prompt
        assert "High barrier, Light blocking, Heat sealable" in prompt
        assert "Oxygen Permeability: 1.5" in prompt
        assert "Material Name:" in prompt

    def test_custom_query_replaces_prompt(self, current_material):
        assert build_research_prompt(ExtractedRequirements(), current_material, "only this") == "only this"


# ===========================================================================
# Class 2: Parsing
# ===========================================================================

class TestParseResearchText:

    def test_sections(self, research_text):
        result = parse_research_text(research_text)
        assert result.trends == [
            "Mono-material PE laminates for recyclability",
            "Bio-based barrier coatings",
        ]
        assert result.considerations == [
            "Higher raw material cost",
            "Limited industrial composting infrastructure",
        ]
        assert result.full_text == research_text
        assert result.timestamp

    def test_section_materials_with_inline_citations(self, research_text):
        result = parse_research_text(research_text)
        high = [m for m in result.materials if m.confidence == "high"]
        assert [m.name for m in high] == ["PLA (Polylactic Acid)", "Cellulose Nanofiber Composite"]
        assert all(m.source_label == "External Deep Research" for m in high)

        citation = high[0].citations[0]
        assert citation.title == "Advances in PLA films"
        assert citation.authors == "NatureWorks"
        assert citation.year == 2022
        assert citation.kind == "paper"

    def test_pattern_materials_follow_section_materials(self, research_text):
        result = parse_research_text(research_text)
        medium = [m.name for m in result.materials if m.confidence == "medium"]
        assert medium == ["PLA", "Cellulose", "Polylactic Acid"]
        names = [m.name for m in result.materials]
        assert len(names) == len(set(names))

    def test_reference_list_and_urls(self, research_text):
        result = parse_research_text(research_text)
        titles = [c.title for c in result.citations]
        assert titles == [
            "Biodegradable packaging review",
            "Barrier films outlook",
            "Online Resource: www.natureworksllc.com",
            "Online Resource: example.org",
        ]
        assert result.citations[0].authors == "Smith J."
        assert result.citations[0].year == 2023
        assert result.citations[1].kind == "report"
        assert result.citations[2].url == "https://www.natureworksllc.com/products"
        assert result.citations[2].kind == "website"

    def test_empty_text(self):
        result = parse_research_text("")
        assert result.materials == []
        assert result.citations == []

    def test_garbage_never_raises(self):
        result = parse_research_text("}}}{{{ 1. \n2.\n Material Name: \n References: [, ,]\n http://")
        assert result.full_text.startswith("}}}")

    def test_numbered_reference_list(self):
        text = "\n".join([
            "4. Reference List",
            "1. Biodegradable packaging review, Smith J., 2023",
            "2. Market trends in bioplastics, European Bioplastics, 2022",
            "3. Barrier films outlook, Kim, 2021",
        ])
        result = parse_research_text(text)
        assert [(c.title, c.authors, c.year) for c in result.citations] == [
            ("Biodegradable packaging review", "Smith J.", 2023),
            ("Market trends in bioplastics", "European Bioplastics", 2022),
            ("Barrier films outlook", "Kim", 2021),
        ]
        assert result.trends == []

    def test_numbered_items_stay_in_their_section(self):
        text = "\n".join([
            "2. Technology Trends",
            "1. Mono-material PE films",
            "2. Top-down sorting of laminates",
            "3. Implementation Considerations",
            "- Higher raw material cost",
        ])
        result = parse_research_text(text)
        assert result.trends == ["Mono-material PE films", "Top-down sorting of laminates"]
        assert result.considerations == ["Higher raw material cost"]
        assert not any(m.confidence == "high" for m in result.materials)

    def test_split_sections_kinds(self, research_text):
        kinds = [kind for kind, _ in split_sections(research_text)]
        assert kinds == [None, "materials", "trends", "considerations", "citations"]

    def test_text_without_sections_still_pattern_matched(self):
        result = parse_research_text("Recent work on PBAT and Bio-PE blends looks promising.")
        assert [m.name for m in result.materials] == ["PBAT", "Bio-PE"]


class TestExtractionRules:

    def test_word_boundaries(self):
        found = find_pattern_materials("Bioplastics and plastic films", [])
        assert found == []

    def test_known_names_are_not_duplicated(self):
        known = [ExternalFinding(name="PLA", source_label="x", confidence="high")]
        found = find_pattern_materials("PLA and PLA again, plus PHA", known)
        assert [f.name for f in found] == ["PHA"]

    def test_citation_line_formats(self):
        section = "\n".join([
            "4. References",
            '- "Compostable films" (Tanaka, 2020)',
            "Recycled polyolefins, Plastics Europe, 2019",
            "[3] Paper barrier coatings - Kim et al. (2021)",
            "A patent on PHA blends, Kaneka, 2018",
            "Not a citation",
        ])
        citations = parse_citation_lines(section)
        assert [(c.title, c.authors, c.year) for c in citations] == [
            ("Compostable films", "Tanaka", 2020),
            ("Recycled polyolefins", "Plastics Europe", 2019),
            ("Paper barrier coatings", "Kim et al.", 2021),
            ("A patent on PHA blends", "Kaneka", 2018),
        ]
        assert citations[3].kind == "patent"

    def test_url_attached_to_matching_citation(self):
        citations = [Citation(title="Report", authors="NatureWorks LLC", year=2022)]
        attach_urls("see https://natureworks.com/a and https://natureworks.com/a", citations)
        assert len(citations) == 1
        assert citations[0].url == "https://natureworks.com/a"


# ===========================================================================
# Class 3: ResearchEngine
# ===========================================================================

class TestResearchEngine:

    def test_unconfigured_returns_none(self, stub_llm_factory, current_material):
        llm = stub_llm_factory(["ignored"], configured=False)
        engine = ResearchEngine(llm)
        assert asyncio.run(engine.search(ExtractedRequirements(), current_material)) is None
        assert llm.prompts == []

    def test_no_text_returns_none(self, stub_llm_factory, current_material):
        engine = ResearchEngine(stub_llm_factory([None]))
        assert asyncio.run(engine.search(ExtractedRequirements(), current_material)) is None

    def test_parses_response(self, stub_llm_factory, current_material, research_text):
        llm = stub_llm_factory([research_text])
        result = asyncio.run(ResearchEngine(llm).search(ExtractedRequirements(), current_material))
        assert len(result.materials) == 5
        assert len(result.trends) == 2

    def test_custom_query_is_sent(self, stub_llm_factory):
        llm = stub_llm_factory(["nothing useful"])
        asyncio.run(ResearchEngine(llm).search(
            ExtractedRequirements(), CurrentMaterialComposition(), custom_query="CNF barrier films",
        ))
        assert llm.prompts == ["CNF barrier films"]
