"""Markdown rendering of a finished blog post.

Layout: title, subtitle, hero image, reading time and tags, an SEO metadata
block, the introduction, one ``##`` heading per section, the call to action,
and related topics.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from models import PublishArtifact

LOGGER = logging.getLogger(__name__)


def render_markdown(artifact: PublishArtifact) -> str:
    content = artifact.content
    engagement = artifact.engagement
    seo = artifact.seo

    lines: list[str] = [f"# {content.title}", ""]
    if content.subtitle:
        lines += [f"> {content.subtitle}", ""]
    if content.hero_image.url:
        alt = content.hero_image.alt or "Hero Image"
        lines += [f"![{alt}]({content.hero_image.url})", ""]
    lines += [f"**Reading Time:** {content.reading_time}", ""]
    lines += [f"**Tags:** {', '.join(engagement.tags)}", ""]
    lines += ["---", ""]
    lines += ["## SEO Metadata", ""]
    lines.append(f"- **Meta Description:** {seo.meta_description}")
    lines.append(f"- **Keywords:** {', '.join(seo.keywords)}")
    lines += [f"- **Slug:** {post_slug(artifact)}", ""]
    lines += ["---", ""]
    if content.introduction:
        lines += [content.introduction, ""]

    for section in content.sections:
        lines += [f"## {section.heading}", "", section.content, ""]

    if content.call_to_action:
        lines += [content.call_to_action, ""]
    lines += ["---", ""]
    lines.append(f"**Related Topics:** {', '.join(engagement.related_topics)}")
    return "\n".join(lines) + "\n"


def post_slug(artifact: PublishArtifact) -> str:
    """The backend's slug, or one derived from the title when it is missing."""
    return artifact.seo.slug or slugify(artifact.seo.title or artifact.content.title)


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "blog-post"


def export_markdown(artifact: PublishArtifact, directory: str | Path = ".") -> Path:
    """Write ``<slug>.md`` into ``directory`` and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{slugify(post_slug(artifact))}.md"
    path.write_text(render_markdown(artifact), encoding="utf-8")
    LOGGER.info("Exported markdown to %s", path)
    return path
