"""Prompt text for short-form idea generation."""
from __future__ import annotations

from typing import List

from ideacal.specs.models.domain import GenerationParams

SYSTEM_INSTRUCTIONS = (
    "You generate short-form video ideas tailored to a specific niche. "
    "Every idea has a catchy title, an outline and suggested mentions. "
    "Reply with a single JSON object and nothing else."
)

TITLE_TEMPLATES: List[str] = [
    "[Number] Secrets Nobody Tells You About [Topic]",
    "[Number] [Topic] Tools That Will CHANGE How You Work",
    "What NOBODY Tells You About [Topic] (and Why It Matters)",
    "[Number] GENIUS [Topic] Tricks That Save You HOURS",
    "Do This for [Short Time] and TRANSFORM Your [Result]",
    "[Number] FATAL [Topic] Mistakes You Are Making WITHOUT KNOWING",
    "[Number] LITTLE-KNOWN Ways to [Big Result]",
    "From [Beginner Level] to [Pro Level] in [Topic] (Without Losing Your Mind)",
    "The [Number] AI Tools You MUST Know for [Action]",
    "[Number] CREATIVE Ideas for [Goal] Nobody Is Using",
    "Stuck on [Topic]? These [Number] TRICKS Will Save You",
    "How the BEST Get [Result] in HALF the Time",
    "[Number] [Topic] Trends That Will DOMINATE This [Year]",
    "TRY These [Number] [Topic] HACKS for INSTANT Results",
]


def title_template_for(slot_index: int) -> str:
    return TITLE_TEMPLATES[slot_index % len(TITLE_TEMPLATES)]


def build_idea_prompt(params: GenerationParams) -> str:
    template = params.titleTemplate or TITLE_TEMPLATES[0]
    focus = params.focus or "practical value"
    style = params.style or "straightforward"
    tone = params.tone or "friendly"
    pillar_line = f"The idea belongs to the content pillar \"{params.pillar}\".\n" if params.pillar else ""
    subcategory = f", specifically {params.subcategory}" if params.subcategory else ""

    return f"""
Generate one short-form video idea in the {params.category} niche{subcategory}.
The video should focus on {focus}, run about {params.lengthBucket}, and use a {style} style with a {tone} tone.
{pillar_line}
Use this title format, adapted to your idea: "{template}"
Make the title punchy, 6-10 words, with a few words in CAPITALS for emphasis.

Return EXACTLY these fields as a JSON object:
1. title: the title, following the format above
2. outline: an array of 7-10 concrete points to cover (strings)
3. midMention: a 5-10 second mention for the middle of the video
4. endMention: a 10-15 second closing mention
5. thumbnailIdea: a thumbnail concept with large, readable text
6. interactionQuestion: a question that invites comments
7. category: "{params.category}"
8. subcategory: "{params.subcategory}"
9. lengthBucket: "{params.lengthBucket}"

Keep it PRACTICAL and CONCRETE. Respond ONLY with valid JSON, no extra text.
""".strip()
