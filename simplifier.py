"""Stage 2: rewrite the analysis as audience-appropriate blog content."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import replace
from typing import Any

from errors import InputRejected
from llm_client import LLMClient
from models import AnalysisRecord, SimplifiedRecord, count_words

SIMPLIFIER_TEMPERATURE = 0.7
WORDS_PER_MINUTE = 200
MIN_SECTIONS = 4
DEFAULT_AUDIENCE = "General public"
DEFAULT_TONE = "Engaging"

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a content simplification agent. Your job is to translate complex research into engaging, easy-to-understand blog content.

Output ONLY valid JSON with this exact structure:
{
  "title": "engaging blog title",
  "hook": "attention-grabbing opening hook",
  "introduction": "2-3 paragraph introduction",
  "sections": [
    {
      "heading": "section heading",
      "content": "simplified section content with paragraphs"
    }
  ],
  "callToAction": "engaging call to action",
  "readingTime": "X min read",
  "targetAudience": "audience type",
  "tone": "tone style"
}

Make content accessible, engaging, and easy to understand for the target audience."""


def simplify_analysis(
    analysis: AnalysisRecord | None,
    client: LLMClient,
    target_audience: str = DEFAULT_AUDIENCE,
    tone: str = DEFAULT_TONE,
) -> SimplifiedRecord:
    """Turn an AnalysisRecord into a SimplifiedRecord for the given audience and tone."""
    if analysis is None:
        raise InputRejected("Analysis data is required")

    target_audience = target_audience.strip() or DEFAULT_AUDIENCE
    tone = tone.strip() or DEFAULT_TONE
    LOGGER.info("Simplifying analysis for audience=%r tone=%r", target_audience, tone)

    prompt = (
        "Transform this research analysis into an engaging blog post:\n\n"
        f"**Analysis:**\n{json.dumps(analysis.to_dict(), indent=2)}\n\n"
        f"**Target Audience:** {target_audience}\n"
        f"**Tone:** {tone}\n\n"
        "Create simplified content that:\n"
        "1. Makes technical concepts accessible\n"
        "2. Engages the target audience\n"
        "3. Maintains accuracy while simplifying\n"
        "4. Uses clear section headings\n"
        "5. Includes an engaging hook and introduction\n"
        "6. Ends with a strong call to action\n\n"
        f"Output in JSON format with at least {MIN_SECTIONS} sections covering: what the research is about, "
        "key discoveries, methodology, and why it matters."
    )
    payload = client.generate_structured(
        prompt,
        SYSTEM_PROMPT,
        temperature=SIMPLIFIER_TEMPERATURE,
        schema_name="simplified content",
    )
    record = SimplifiedRecord.from_payload(payload)

    if len(record.sections) < MIN_SECTIONS:
        LOGGER.warning("Simplified content has %s sections (asked for at least %s)", len(record.sections), MIN_SECTIONS)

    if not record.reading_time:
        reading_time = estimate_reading_time(record.to_dict())
        LOGGER.info("Backend omitted reading time; estimated %s", reading_time)
        record = replace(record, reading_time=reading_time)

    return record


def estimate_reading_time(payload: dict[str, Any]) -> str:
    """``ceil(words / 200)`` over the serialized record, as "<n> min read"."""
    words = count_words(json.dumps(payload, separators=(",", ":")))
    minutes = math.ceil(words / WORDS_PER_MINUTE)
    return f"{minutes} min read"
