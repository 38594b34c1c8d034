"""Stage 4: merge content and visuals into a publish-ready, SEO-tagged artifact."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from llm_client import LLMClient
from models import PublishArtifact, SimplifiedRecord, VisualPlan

OPTIMIZER_TEMPERATURE = 0.5
DEFAULT_KEYWORDS: tuple[str, ...] = ("research", "science", "innovation")
SEO_TITLE_MAX_CHARS = 60
META_DESCRIPTION_MAX_CHARS = 160

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an SEO and engagement optimization agent. Your job is to optimize blog content for search engines and reader engagement.

Output ONLY valid JSON with this exact structure:
{
  "seo": {
    "title": "SEO optimized title (50-60 chars)",
    "metaDescription": "meta description (150-160 chars)",
    "keywords": ["keyword1", "keyword2"],
    "slug": "url-slug",
    "ogTitle": "Open Graph title",
    "ogDescription": "OG description",
    "ogImage": "image URL",
    "twitterCard": "summary_large_image"
  },
  "content": {
    "title": "blog title",
    "subtitle": "subtitle",
    "heroImage": {},
    "introduction": "intro text",
    "sections": [],
    "visuals": [],
    "infographics": [],
    "callToAction": "CTA text",
    "readingTime": "X min read"
  },
  "engagement": {
    "headlines": ["headline1", "headline2"],
    "pullQuotes": ["quote1", "quote2"],
    "socialSnippets": {
      "twitter": "tweet text",
      "linkedin": "LinkedIn post",
      "facebook": "Facebook post"
    },
    "tags": ["tag1", "tag2"],
    "relatedTopics": ["topic1", "topic2"]
  },
  "readability": {
    "score": "score description",
    "improvements": ["improvement1"],
    "targetScore": "target description"
  },
  "analytics": {
    "estimatedPageViews": "estimate",
    "shareability": "assessment",
    "bounceRateEstimate": "estimate"
  },
  "publishedDate": "ISO date",
  "lastModified": "ISO date"
}

Optimize for search engines while maintaining readability and engagement."""


def parse_keywords(raw: str | None) -> list[str]:
    """Split a comma-separated keyword string; fall back to DEFAULT_KEYWORDS when empty."""
    keywords = [part.strip() for part in (raw or "").split(",") if part.strip()]
    return keywords or list(DEFAULT_KEYWORDS)


def optimize_post(
    simplified: SimplifiedRecord,
    visuals: VisualPlan,
    client: LLMClient,
    keywords: str | None = "",
) -> PublishArtifact:
    """Produce the PublishArtifact for one run."""
    keyword_list = parse_keywords(keywords)
    LOGGER.info("Optimizing post %r with keywords=%s", simplified.title, keyword_list)

    prompt = (
        "Optimize this blog post for SEO and engagement:\n\n"
        f"**Simplified Content:**\n{json.dumps(simplified.to_dict(), indent=2)}\n\n"
        f"**Visuals:**\n{json.dumps(visuals.to_dict(), indent=2)}\n\n"
        f"**Keywords:** {', '.join(keyword_list)}\n\n"
        "Create:\n"
        "1. SEO-optimized meta tags and descriptions\n"
        "2. Engaging social media snippets\n"
        "3. Alternative headlines\n"
        "4. Pull quotes from the content\n"
        "5. Related topics and tags\n"
        "6. Readability score and improvements\n"
        "7. Analytics estimates\n\n"
        f"Ensure the title is under {SEO_TITLE_MAX_CHARS} characters and meta description "
        f"under {META_DESCRIPTION_MAX_CHARS} characters."
    )
    payload = client.generate_structured(
        prompt,
        SYSTEM_PROMPT,
        temperature=OPTIMIZER_TEMPERATURE,
        schema_name="optimized post",
    )
    payload = _fill_defaults(payload, keyword_list, now=datetime.now(UTC).isoformat())
    artifact = PublishArtifact.from_payload(payload)

    if len(artifact.seo.title) > SEO_TITLE_MAX_CHARS:
        LOGGER.warning("SEO title is %s chars (limit %s)", len(artifact.seo.title), SEO_TITLE_MAX_CHARS)
    if len(artifact.seo.meta_description) > META_DESCRIPTION_MAX_CHARS:
        LOGGER.warning(
            "Meta description is %s chars (limit %s)",
            len(artifact.seo.meta_description),
            META_DESCRIPTION_MAX_CHARS,
        )

    LOGGER.info("Optimized post ready: slug=%r sections=%s", artifact.seo.slug, len(artifact.content.sections))
    return artifact


def _fill_defaults(payload: dict[str, Any], keyword_list: list[str], now: str) -> dict[str, Any]:
    """Fill timestamps and keywords the backend left out; backend values are kept as sent."""
    filled = dict(payload)
    if _omitted(filled.get("publishedDate")):
        filled["publishedDate"] = now
    if _omitted(filled.get("lastModified")):
        filled["lastModified"] = now

    seo = filled.get("seo")
    if isinstance(seo, dict) and not seo.get("keywords"):
        filled["seo"] = {**seo, "keywords": list(keyword_list)}
    return filled


def _omitted(value: Any) -> bool:
    return value is None or value == ""
