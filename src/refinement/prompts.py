"""Prompt templates and strategy instructions for text rewrites."""

from typing import Optional, Sequence


# System prompt for every LLM-backed rewrite
REWRITE_SYSTEM_PROMPT = """You are an expert editor refining written content.
Your task is to apply one focused improvement to the text you are given.

Key principles:
1. Apply only the requested change
2. Preserve every fact, figure and code sample unless told otherwise
3. Keep the original language, voice and markdown formatting
4. Never add commentary about the edit itself

Return only the rewritten text wrapped in <rewritten></rewritten> tags."""

REWRITE_USER_PROMPT = """Instructions: {instructions}

Text to refine:
<text>
{text}
</text>

Return the complete refined text inside <rewritten></rewritten> tags."""


# Strategy instructions. The heuristic rewriter keys off the phrases
# "long sentences", "consistent formatting" and "code quality".
CLARITY_INSTRUCTIONS = (
    "Improve clarity by breaking long sentences into shorter ones. "
    "Simplify complex phrases. Maintain all original information."
)

COMPLETENESS_INSTRUCTIONS = (
    'Ensure all parts of the original query are fully addressed: "{query}". '
    "Add any missing information. Don't remove anything important."
)

FACTUAL_ACCURACY_INSTRUCTIONS = (
    "Verify factual claims for accuracy. Replace any uncertain claims with more "
    "accurate information. If precise data is unavailable, use more qualified "
    "language (e.g., 'approximately', 'around')."
)

STRUCTURE_INSTRUCTIONS = (
    "Ensure consistent formatting throughout. Standardize bullet points, "
    "numbering, and heading levels. Make sure similar items use similar structures."
)

CODE_QUALITY_INSTRUCTIONS = (
    "Improve code quality by adding appropriate comments, fixing indentation, "
    "improving variable names, and ensuring best practices. Make sure code "
    "blocks are syntactically valid and well-formatted."
)

TONE_CONSISTENCY_INSTRUCTIONS = (
    "Ensure a consistent {tone} tone throughout the text. "
    "Adjust any sections that don't match this overall tone."
)

CITATION_INSTRUCTIONS = (
    "Ensure all citations follow a consistent format. For in-text citations use "
    "(Author, Year) format. Make sure all cited works would be properly "
    "referenced in a bibliography."
)

DATA_VISUALIZATION_INSTRUCTIONS = (
    "For numerical data presented in the content, suggest appropriate "
    "visualization types (charts, graphs, etc.) in [brackets]. Don't create "
    "actual visualizations, just suggest what would be effective."
)

SEO_INSTRUCTIONS = (
    "Enhance the content for search engines while maintaining natural language. "
    "{keywords_instruction} Ensure appropriate keyword density. Structure content "
    "with proper headings. Keep paragraphs focused and concise."
)


def format_rewrite_prompt(text: str, instructions: str) -> str:
    """Build the user prompt for a rewrite request."""
    return REWRITE_USER_PROMPT.format(instructions=instructions, text=text)


def completeness_instructions(query: Optional[str]) -> str:
    return COMPLETENESS_INSTRUCTIONS.format(query=query or "")


def tone_instructions(tone: str) -> str:
    return TONE_CONSISTENCY_INSTRUCTIONS.format(tone=tone)


def seo_instructions(keywords: Optional[Sequence[str]] = None) -> str:
    """SEO instructions, focused on the given keywords when there are any."""
    if keywords:
        keywords_instruction = f"Focus on these keywords: {', '.join(keywords)}."
    else:
        keywords_instruction = "Identify and naturally incorporate likely search keywords."
    return SEO_INSTRUCTIONS.format(keywords_instruction=keywords_instruction)
