"""
Spec Analysis Engine — reads a product specification document and extracts
performance requirements plus the (estimated) current material composition.
"""
import logging
from typing import Optional

from app.agents.tool_schemas import AnalyzeRequirementsTool, parse_tool_output
from app.services.llm_client import LLMClient, extract_json_block, get_system_prompt

logger = logging.getLogger("packmat-spec-analysis")

# Documents longer than this are truncated before prompting
MAX_DOCUMENT_CHARS = 15000


def build_analysis_prompt(document_text: str) -> str:
    return f"""Analyze the product performance requirements and material information from the following document and extract them in JSON format.
Please output in the following format:
{{
  "requirements": [
    {{
      "name": "Requirement name",
      "value": "Specific value or standard",
      "unit": "Unit (if applicable)",
      "importance": "high/medium/low"
    }}
  ],
  "materials": {{
    "composition": "Estimated material composition (e.g., PET/Al/PE)",
    "properties": ["Property 1", "Property 2", "Property 3"],
    "analysisConfidence": "high/medium/low"
  }}
}}

Document content:
{document_text[:MAX_DOCUMENT_CHARS]}

Please focus on analyzing the following points:
1. Performance requirements (strength, durability, temperature resistance, barrier properties, weight, size, cost, etc.)
2. Information about materials used
3. Information about packaging form and structure
4. Environmental and recycling requirements

If material composition is not specified, please estimate and suggest an appropriate multi-layer structure based on the requirements."""


class SpecAnalysisEngine:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    @property
    def configured(self) -> bool:
        return self.llm.configured

    async def analyze(self, document_text: str) -> Optional[AnalyzeRequirementsTool.Output]:
        """None when the capability is unavailable or its answer does not validate."""
        if not self.configured:
            logger.info("Analysis LLM not configured — requirement analysis unavailable")
            return None

        text = await self.llm.generate(
            build_analysis_prompt(document_text),
            system_prompt=get_system_prompt("spec_analyst"),
        )
        if text is None:
            return None

        block = extract_json_block(text)
        if block is None:
            logger.warning(f"Requirement analysis returned no JSON object ({len(text)} chars)")
            return None
        try:
            result = parse_tool_output("analyze_requirements", block)
        except ValueError as e:
            logger.warning(f"Requirement analysis output invalid: {e}")
            return None

        logger.info(
            f"Requirement analysis: {len(result.requirements)} requirements, "
            f"composition '{result.materials.composition}'"
        )
        return result
