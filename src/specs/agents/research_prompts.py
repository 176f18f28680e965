"""
Prompt templates for the research phases and the article synthesis run.
"""

from typing import Dict, Iterable, List, Tuple

from src.specs.common.enums import PhaseId
from src.specs.common.errors import PreconditionError
from src.specs.models.domain import UserContent

PHASE_PROMPTS: Dict[PhaseId, str] = {
    PhaseId.TOPIC: (
        'Analyze the topic "{keyword}" for SEO content.\n'
        "Cover: core subject definition, main subtopics, related entities, "
        "content gaps among top-ranking pages, and the angle most likely to rank."
    ),
    PhaseId.INTENT: (
        'Analyze the search intent behind "{keyword}".\n'
        "Classify the dominant intent (informational, navigational, commercial, "
        "transactional), list the questions searchers are trying to answer, and "
        "describe what a satisfying result must contain."
    ),
    PhaseId.STRUCTURE: (
        'Recommend a content structure for an article targeting "{keyword}".\n'
        "Suggest the article format, ideal length, section order, featured snippet "
        "opportunities, and where to place tables, lists or FAQs."
    ),
    PhaseId.YMYL: (
        'Evaluate YMYL (Your Money Your Life) considerations for "{keyword}".\n'
        "Rate the risk level, list claims that need expert sourcing, required "
        "disclaimers, and the E-E-A-T signals the article must show."
    ),
    PhaseId.TONE: (
        'Recommend the tone and style for an article about "{keyword}".\n'
        "Describe the target reader, reading level, voice, terminology to use or "
        "avoid, and give two short sample paragraphs."
    ),
    PhaseId.VISUAL: (
        'Plan the visual content strategy for an article about "{keyword}".\n'
        "Propose images, diagrams, charts or video with placement, purpose and "
        "descriptive alt text for each."
    ),
    PhaseId.OUTLINE: (
        'Create a comprehensive article outline for "{keyword}".\n'
        "Provide the H1, H2 and H3 headings with a short note on what each section "
        "covers and which keywords it targets."
    ),
    PhaseId.KEYWORDS: (
        'Perform keyword research for "{keyword}".\n'
        "List primary, secondary and long-tail keywords, related questions, and "
        "semantic terms, grouped by intent with suggested placement."
    ),
}

SYNTHESIS_TEMPLATE = (
    "Write a complete, SEO-optimized article using the research below.\n"
    "Follow the outline, tone and structure recommendations, respect the YMYL "
    "guidance, and weave keywords in naturally. Format the article in Markdown "
    "with a single H1 title.\n\n"
    "RESEARCH:\n"
    "{research}\n"
    "{user_content}"
)


def build_research_prompt(phase: PhaseId, keyword: str) -> str:
    template = PHASE_PROMPTS.get(phase)
    if template is None:
        raise PreconditionError(f"Phase '{phase.value}' has no research prompt")
    return template.format(keyword=keyword.strip())


def format_research_section(blocks: Iterable[Tuple[PhaseId, str]]) -> str:
    """Join completed phase results as ``HEADING:\\ntext`` blocks."""
    return "\n\n".join(f"{phase.heading}:\n{text}" for phase, text in blocks)


def format_user_content(content: UserContent) -> str:
    if content.is_empty():
        return ""
    lines: List[str] = ["", "USER-SUPPLIED CONTENT:"]
    extra = content.additionalContent
    for label, value in (
        ("Company information", extra.companyInfo),
        ("Special notes", extra.specialNotes),
        ("Team credentials", extra.teamCredentials),
        ("Call-to-action preferences", extra.ctaPreferences),
    ):
        if value.strip():
            lines.append(f"{label}: {value.strip()}")
    if content.links:
        lines.append("Links to reference:")
        lines.extend(f"- {link.title or link.url}: {link.url}" for link in content.links)
    if content.media:
        lines.append("Media to include:")
        for item in content.media:
            desc = f" ({item.description})" if item.description else ""
            kind = f"[{item.type}] " if item.type else ""
            lines.append(f"- {kind}{item.url}{desc}")
    return "\n".join(lines) + "\n"


def build_synthesis_prompt(blocks: Iterable[Tuple[PhaseId, str]], content: UserContent) -> str:
    return SYNTHESIS_TEMPLATE.format(
        research=format_research_section(blocks),
        user_content=format_user_content(content),
    )
