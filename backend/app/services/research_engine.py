"""
External Knowledge Search — deep-research prompt, LLM call, and best-effort
parsing of the unstructured answer into findings, trends, considerations,
and citations.

Parsing never raises: malformed or partial documents degrade to partial
structures.
"""
import re
import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import urlparse

from app.agents import config as cfg
from app.models.material_schema import (
    Citation,
    CurrentMaterialComposition,
    ExternalFinding,
    ExtractedRequirements,
    ResearchResult,
)
from app.services.llm_client import LLMClient, get_system_prompt

logger = logging.getLogger("packmat-research")


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def render_requirements(requirements: ExtractedRequirements) -> list[str]:
    """One line per present requirement, with units. Absent ones are omitted."""
    lines = []
    for feature, (label, unit) in cfg.FEATURE_PROMPT_LABELS.items():
        value = getattr(requirements, feature)
        if value is None:
            continue
        value_text = str(int(value)) if float(value).is_integer() else str(value)
        lines.append(f"{label}: {value_text} {unit}")
    return lines


def build_research_prompt(
    requirements: ExtractedRequirements,
    current: CurrentMaterialComposition,
    custom_query: Optional[str] = None,
) -> str:
    if custom_query:
        return custom_query

    properties = ", ".join(current.properties) if current.properties else "Unknown"
    performance = "\n".join(render_requirements(requirements)) or "No numeric requirements specified"

    return f"""
You are a specialized researcher in packaging materials. Please investigate the latest research papers and practical implementation cases under the following conditions:

[Current Material]
- Composition: {current.composition or 'Unknown'}
- Properties: {properties}

[Performance Requirements]
{performance}

[Research Items]
1) Latest material research trends since 2020
2) Practical cases of sustainable packaging materials
3) Latest developments in bioplastics and biodegradable materials
4) Technologies for recyclable mono-material packaging
5) Performance comparison data of alternative materials

[Key Focus Points]
- Contribution to achieving carbon neutrality
- Safety certifications for food packaging
- Mass production feasibility and cost competitiveness
- Compatibility with existing processing equipment

[Response Format]
Please organize your answer in the following format:

1. Top 3 Recommended Materials
   - Material Name:
   - Manufacturer:
   - Key Physical Properties:
   - Price Range:
   - Implementation Cases:
   - References: [Paper/Report Title, Author/Institution, Year]

2. Technology Trends
   - Latest research and development directions
   - Future outlook

3. Implementation Considerations
   - Technical challenges
   - Cost-related challenges
   - Regulatory and certification requirements

4. Reference List
   One reference per line: Title, Author/Institution, Year, followed by the URL if available.

Please provide concrete material names, manufacturers, physical property data, and always include sources of information.
"""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

SECTION_SPLIT = re.compile(r"\n(?=[ \t]*(?:#{1,6}[ \t]*)?\**\d+\.[ \t])")
MATERIAL_MARKER = re.compile(r"Material Name\**[ \t]*[:：]")
INLINE_CITATION = re.compile(r"\b(?:References?|Sources?)\b\**[ \t]*[:：]?[ \t]*\[?([^\]\n]+)\]?", re.IGNORECASE)
BULLET = re.compile(r"^\s*(?:[-・•*]|\d+[.)](?=\s))\s*")
LIST_MARKER = re.compile(r"^\s*(?:#{1,6}\s*)?\**\s*(?:\d+[.)]|[-・•*])\s*")
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+")

# Ordered citation-list rules; first match wins per line
CITATION_LINE_PATTERNS = [
    # "Title" (Author, Year)
    re.compile(r'"([^"]+)"\s*\(([^,]+),\s*(\d{4})\)'),
    # Title, Author, Year
    re.compile(r"^([^,]+),\s*([^,]+),\s*(\d{4})"),
    # [1] Title - Author (Year)
    re.compile(r"\[\d+\]\s*([^-]+)\s*-\s*([^(]+)\s*\((\d{4})\)"),
]

# Domain-specific names caught anywhere in the document
MATERIAL_NAME_PATTERNS = [
    re.compile(r"\b(?:PLA|PBS|PHA|PBAT|PCL|TPS|PHB|P3HB|P4HB)\b", re.IGNORECASE),
    re.compile(r"\b(?:Bio-|Bio|Recycled |Recycled|Regenerated )(?:PET|PE|PP|PA)\b", re.IGNORECASE),
    re.compile(r"\b(?:Cellulose|Chitin|Starch|Alginate)(?:-based|\s+based)?\b", re.IGNORECASE),
    re.compile(r"\b(?:Polylactic\s+Acid|Polyhydroxyalkanoate|Polybutylene\s+Succinate)\b", re.IGNORECASE),
]


def _classify_header(line: str) -> Optional[str]:
    lowered = line.lower()
    if "reference" in lowered or "citation" in lowered or "bibliograph" in lowered:
        return "citations"
    if "recommended material" in lowered or re.search(r"\btop\b", lowered):
        return "materials"
    if "trend" in lowered:
        return "trends"
    if "consideration" in lowered or "challenge" in lowered:
        return "considerations"
    return None


def _section_kind(header: str) -> Optional[str]:
    """Kind of a numbered header line, or None for a numbered item inside a section."""
    kind = _classify_header(header)
    if kind is None:
        return None
    # "2. Market trends in bioplastics, European Bioplastics, 2022" is a reference, not a header
    body = LIST_MARKER.sub("", header.strip(), count=1)
    if any(pattern.search(body) for pattern in CITATION_LINE_PATTERNS):
        return None
    return kind


def split_sections(text: str) -> list[tuple[Optional[str], str]]:
    """
    Group the answer into (kind, section) pairs.

    A numbered line opens a section only when it reads as a section header
    and its number is above the previous header's. Other numbered lines
    (list items, numbered references) stay in the enclosing section.
    """
    sections: list[tuple[Optional[str], str]] = []
    last_number = 0
    for chunk in SECTION_SPLIT.split(text):
        header = chunk.strip().split("\n")[0] if chunk.strip() else ""
        kind = _section_kind(header)
        number = _leading_int(re.sub(r"^[\s#*]*", "", header))
        if kind is not None and number is not None:
            if number <= last_number:
                kind = None
            else:
                last_number = number
        if kind is None and sections:
            prev_kind, prev_text = sections[-1]
            sections[-1] = (prev_kind, prev_text + "\n" + chunk)
        else:
            sections.append((kind, chunk))
    return sections


def _leading_int(text: str) -> Optional[int]:
    match = re.match(r"\s*(\d+)", text)
    return int(match.group(1)) if match else None


def _citation_kind(line: str) -> str:
    lowered = line.lower()
    if "patent" in lowered:
        return "patent"
    if "report" in lowered:
        return "report"
    return "paper"


def _bullets(section: str) -> list[str]:
    items = []
    for line in section.split("\n")[1:]:
        if BULLET.match(line):
            item = BULLET.sub("", line, count=1).strip()
            if item:
                items.append(item)
    return items


def parse_material_section(section: str) -> list[ExternalFinding]:
    findings = []
    # Text before the first marker is the section header / preamble
    blocks = MATERIAL_MARKER.split(section)[1:]
    for block in blocks:
        if not block.strip():
            continue
        first_line = block.strip().split("\n")[0]
        name = re.split(r"[,、]", first_line)[0].strip().strip("*").strip()
        if not name:
            continue

        citations = []
        match = INLINE_CITATION.search(block)
        if match:
            parts = [p.strip() for p in match.group(1).split(",")]
            if len(parts) >= 2 and parts[0] and parts[1]:
                year = _leading_int(parts[2]) if len(parts) > 2 else None
                citations.append(Citation(
                    title=parts[0],
                    authors=parts[1],
                    year=year or datetime.now(timezone.utc).year,
                    kind="paper",
                ))

        findings.append(ExternalFinding(
            name=name,
            source_label=cfg.FINDING_SOURCE_SECTION,
            confidence="high",
            citations=citations or None,
        ))
    return findings


def parse_citation_lines(section: str) -> list[Citation]:
    citations = []
    for raw in section.split("\n")[1:]:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = LIST_MARKER.sub("", line, count=1)
        for pattern in CITATION_LINE_PATTERNS:
            match = pattern.search(line)
            if match:
                citations.append(Citation(
                    title=match.group(1).strip().strip('"'),
                    authors=match.group(2).strip(),
                    year=int(match.group(3)),
                    kind=_citation_kind(line),
                ))
                break
    return citations


def find_pattern_materials(text: str, known: list[ExternalFinding]) -> list[ExternalFinding]:
    """Names matched by the domain regexes, deduplicated by exact name."""
    seen = {f.name for f in known}
    found = []
    for pattern in MATERIAL_NAME_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(0)
            if name in seen:
                continue
            seen.add(name)
            found.append(ExternalFinding(
                name=name,
                source_label=cfg.FINDING_SOURCE_PATTERN,
                confidence="medium",
            ))
    return found


def _domain_token(host: str) -> str:
    labels = [label for label in host.lower().split(".") if label and label != "www"]
    return labels[0] if labels else host.lower()


def attach_urls(text: str, citations: list[Citation]) -> None:
    """
    Attach each URL to the first URL-less citation whose title or authors
    mention the URL's domain token; otherwise add an online-resource citation.
    """
    seen = set()
    for match in URL_PATTERN.finditer(text):
        url = match.group(0).rstrip(").,;:]>")
        if url in seen:
            continue
        seen.add(url)
        host = urlparse(url).hostname
        if not host:
            continue
        token = _domain_token(host)

        target = next(
            (
                c for c in citations
                if not c.url and (
                    token in (c.title or "").lower() or token in (c.authors or "").lower()
                )
            ),
            None,
        )
        if target is not None:
            target.url = url
        else:
            citations.append(Citation(
                title=f"Online Resource: {host}",
                url=url,
                kind="website",
                year=datetime.now(timezone.utc).year,
            ))


def parse_research_text(text: str) -> ResearchResult:
    """Multi-pattern parse of a deep-research answer. Never raises."""
    result = ResearchResult(full_text=text or "", timestamp=datetime.now(timezone.utc).isoformat())
    if not text:
        return result

    try:
        for kind, section in split_sections(text):
            if kind == "materials":
                result.materials.extend(parse_material_section(section))
            elif kind == "trends":
                result.trends.extend(_bullets(section))
            elif kind == "considerations":
                result.considerations.extend(_bullets(section))
            elif kind == "citations":
                result.citations.extend(parse_citation_lines(section))
    except Exception as e:
        logger.warning(f"Section parsing failed, keeping partial result: {e}")

    try:
        result.materials.extend(find_pattern_materials(text, result.materials))
    except Exception as e:
        logger.warning(f"Material pattern scan failed: {e}")

    try:
        attach_urls(text, result.citations)
    except Exception as e:
        logger.warning(f"URL extraction failed: {e}")

    return result


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ResearchEngine:
    """Runs one deep-research request against the configured LLM."""

    def __init__(self, llm: LLMClient, parser: Callable[[str], ResearchResult] = parse_research_text):
        self.llm = llm
        self.parser = parser

    @property
    def configured(self) -> bool:
        return self.llm.configured

    async def search(
        self,
        requirements: ExtractedRequirements,
        current: CurrentMaterialComposition,
        custom_query: Optional[str] = None,
    ) -> Optional[ResearchResult]:
        """
        Returns None ("unavailable") when the capability is not configured or
        the call produced no text.
        """
        if not self.configured:
            logger.info("Research LLM not configured — skipping deep research")
            return None

        prompt = build_research_prompt(requirements, current, custom_query)
        logger.debug(f"Deep research prompt (preview): {prompt[:200]}...")

        text = await self.llm.generate(prompt, system_prompt=get_system_prompt("researcher"))
        if text is None:
            logger.warning("Deep research returned no result")
            return None

        result = self.parser(text)
        logger.info(
            f"Deep research parsed: {len(result.materials)} materials, "
            f"{len(result.trends)} trends, {len(result.citations)} citations"
        )
        return result
