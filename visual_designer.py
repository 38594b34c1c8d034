"""Stage 3: hero image, diagram, infographic and image-prompt suggestions."""

from __future__ import annotations

import json
import logging

from llm_client import LLMClient
from models import AnalysisRecord, SimplifiedRecord, VisualPlan

VISUALS_TEMPERATURE = 0.7

# Requested of the backend only. A plan with other counts is still accepted.
REQUESTED_COUNTS = {
    "diagrams": 3,
    "infographics": 1,
    "image_prompts": 5,
    "design_suggestions": 5,
}

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a visual design agent for blog content. Your job is to suggest visual elements and create detailed image prompts.

Output ONLY valid JSON with this exact structure:
{
  "heroImage": {
    "prompt": "detailed image prompt",
    "url": "https://images.unsplash.com/photo-1451187580459-43490279c0fa?w=1200&h=630&fit=crop",
    "alt": "alt text",
    "caption": "image caption"
  },
  "diagrams": [
    {
      "type": "diagram type",
      "description": "what the diagram shows",
      "prompt": "detailed prompt for creating the diagram",
      "url": "https://images.unsplash.com/photo-[id]?w=800&h=600&fit=crop",
      "suggestion": "how to create or what to include"
    }
  ],
  "infographics": [
    {
      "title": "infographic title",
      "elements": [
        {"label": "element label", "value": "element value"}
      ],
      "layout": "grid"
    }
  ],
  "imagePrompts": ["prompt1", "prompt2"],
  "designSuggestions": ["suggestion1", "suggestion2"]
}

Create professional, relevant visual suggestions. Use Unsplash URLs with appropriate photo IDs."""


def suggest_visuals(analysis: AnalysisRecord, simplified: SimplifiedRecord, client: LLMClient) -> VisualPlan:
    """Derive a VisualPlan from the analysis and the simplified content."""
    LOGGER.info("Generating visual suggestions for %r", simplified.title)
    prompt = (
        "Create visual design suggestions for this blog post:\n\n"
        f"**Analysis:**\n{json.dumps(analysis.to_dict(), indent=2)}\n\n"
        f"**Simplified Content:**\n{json.dumps(simplified.to_dict(), indent=2)}\n\n"
        "Generate:\n"
        "1. Hero image prompt (main visual for the article)\n"
        f"2. {REQUESTED_COUNTS['diagrams']} diagram/visualization suggestions "
        "(methodology flowchart, data visualization, concept illustration)\n"
        f"3. {REQUESTED_COUNTS['infographics']} infographic with 4 key statistics/facts\n"
        f"4. {REQUESTED_COUNTS['image_prompts']} additional image prompts\n"
        f"5. {REQUESTED_COUNTS['design_suggestions']} design suggestions\n\n"
        "Use real Unsplash photo IDs in URLs. Make prompts detailed and specific to the research topic."
    )
    payload = client.generate_structured(
        prompt,
        SYSTEM_PROMPT,
        temperature=VISUALS_TEMPERATURE,
        schema_name="visuals",
    )
    plan = VisualPlan.from_payload(payload)

    received = {
        "diagrams": len(plan.diagrams),
        "infographics": len(plan.infographics),
        "image_prompts": len(plan.image_prompts),
        "design_suggestions": len(plan.design_suggestions),
    }
    for name, expected in REQUESTED_COUNTS.items():
        if received[name] != expected:
            LOGGER.debug("Visual plan has %s %s (asked for %s)", received[name], name, expected)

    LOGGER.info(
        "Visual plan ready: diagrams=%s infographics=%s image_prompts=%s",
        received["diagrams"],
        received["infographics"],
        received["image_prompts"],
    )
    return plan
