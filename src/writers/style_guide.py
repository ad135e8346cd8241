"""Style guidelines injected into writer prompts.

Guidelines depend on the classified content kind and the requested tone.
"""

from src.state.enums import ContentKind, Tone
from src.state.models import WorkItem

STYLE_GUIDELINES: dict[ContentKind, str] = {
    ContentKind.ARTICLE: """ARTICLE STYLE:
- engaging opening paragraph that states what the reader will learn
- short paragraphs (3-5 sentences), one idea per paragraph
- concrete examples, numbers and practical advice
- subheadings that tell the reader what the section delivers
- natural use of the keywords, never stuffed""",
    ContentKind.PRODUCT_DESCRIPTION: """PRODUCT DESCRIPTION STYLE:
- lead with the main benefit for the customer
- translate features into benefits
- precise technical details where they matter (materials, dimensions, use)
- persuasive but honest; no unverifiable superlatives
- clear call to action at the end""",
    ContentKind.SOCIAL_POST: """POST STYLE:
- strong first sentence that stops scrolling
- conversational, direct address to the reader
- very short paragraphs, easy to skim
- end with a question or call to action""",
    ContentKind.BACHELOR_THESIS: """BACHELOR THESIS STYLE:
- academic register, third person or impersonal forms
- precise definitions of the key terms
- every claim supported by a source cited as [Surname, year: page]
- logical flow between subsections with short transitions
- critical discussion, not only description""",
    ContentKind.MASTER_THESIS: """MASTER THESIS STYLE:
- advanced academic register, third person or impersonal forms
- in-depth critical analysis and comparison of positions in the literature
- every claim supported by a source cited as [Surname, year: page]
- explicit research problem, hypotheses and methodology where relevant
- synthesis and own conclusions, not only a review""",
    ContentKind.GENERIC: """GENERAL STYLE:
- clear structure with informative headings
- precise, factual language
- paragraphs that each develop one idea
- examples where they help understanding""",
}

TONE_INSTRUCTIONS: dict[Tone, str] = {
    Tone.INFORMAL: "Use an informal, friendly tone and address the reader directly.",
    Tone.OFFICIAL: "Use an official, professional tone.",
    Tone.IMPERSONAL: "Use an impersonal tone; avoid first and second person.",
}


def get_style_guidelines(item: WorkItem) -> str:
    """Style block for a work item's content kind and tone."""
    style = STYLE_GUIDELINES.get(item.content_kind, STYLE_GUIDELINES[ContentKind.GENERIC])
    return f"{style}\n\nTONE: {TONE_INSTRUCTIONS[item.tone]}"


def language_instruction(item: WorkItem) -> str:
    return (
        f"Write the entire text in this language: {item.language}. "
        "Keep the structural markers described below exactly as specified."
    )
