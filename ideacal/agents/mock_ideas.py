"""Deterministic stand-in ideas for when the provider is exhausted.

No network, no randomness: the same parameters always give the same payload.
"""
from __future__ import annotations

from ideacal.agents.base import IdeaGenerator
from ideacal.specs.models.domain import GenerationParams, IdeaPayload


def _topic(params: GenerationParams) -> str:
    return (params.subcategory or params.category or "your niche").strip()


def mock_idea(params: GenerationParams) -> IdeaPayload:
    topic = _topic(params)
    focus = params.focus or "getting results faster"
    angle = f" for {params.pillar.replace('_', ' ')}" if params.pillar else ""
    return IdeaPayload(
        title=f"7 {topic.upper()} Secrets Nobody Tells You{angle}",
        outline=[
            f"Hook: the biggest time sink in {topic}",
            f"Secret #1: set up a repeatable workflow for {focus}",
            "Secret #2: start from templates instead of a blank page",
            "Secret #3: cut everything that does not move the story forward",
            "Secret #4: automate the boring steps",
            "Secret #5: batch similar tasks together",
            "Secret #6: reuse what already worked",
            "Secret #7: measure one number and improve it",
            "Before vs. after: the result in practice",
        ],
        midMention=f"Quick pause: if {topic} eats your week, the tools in the description will give you hours back.",
        endMention="Everything mentioned today is linked below. Follow for more practical ideas like this one.",
        thumbnailIdea=f"Split screen BEFORE/AFTER with large text '7 {topic.upper()} SECRETS' and a red arrow to the result.",
        interactionQuestion=f"Which of these {topic} secrets surprised you the most?",
        category=params.category,
        subcategory=params.subcategory,
        lengthBucket=params.lengthBucket,
    )


class MockFallbackGenerator(IdeaGenerator):
    def run(self, params: GenerationParams) -> IdeaPayload:
        return mock_idea(params)
