"""Typed records passed between pipeline stages.

Every record is frozen. Records built from backend output go through
``from_payload``, which checks the JSON shape field by field and raises
MalformedOutput instead of producing a half-filled object.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from errors import InputRejected, MalformedOutput


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------

def _get_str(payload: dict[str, Any], key: str, where: str, required: bool = False, strip: bool = True) -> str:
    value = payload.get(key)
    if value is None:
        if required:
            raise MalformedOutput(f"{where}: missing required field '{key}'")
        return ""
    if isinstance(value, bool):
        raise MalformedOutput(f"{where}: field '{key}' must be text, got bool")
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise MalformedOutput(f"{where}: field '{key}' must be text, got {type(value).__name__}")
    if required and not value.strip():
        raise MalformedOutput(f"{where}: field '{key}' is empty")
    return value.strip() if strip else value


def _get_str_list(payload: dict[str, Any], key: str, where: str, non_empty: bool = False) -> tuple[str, ...]:
    value = payload.get(key)
    if value is None:
        value = []
    if not isinstance(value, list):
        raise MalformedOutput(f"{where}: field '{key}' must be a list, got {type(value).__name__}")
    items = tuple(
        str(item).strip()
        for item in value
        if isinstance(item, (str, int, float)) and not isinstance(item, bool) and str(item).strip()
    )
    if non_empty and not items:
        raise MalformedOutput(f"{where}: field '{key}' must not be empty")
    return items


def _get_dict(payload: dict[str, Any], key: str, where: str, required: bool = False) -> dict[str, Any]:
    value = payload.get(key)
    if value is None:
        if required:
            raise MalformedOutput(f"{where}: missing required object '{key}'")
        return {}
    if not isinstance(value, dict):
        raise MalformedOutput(f"{where}: field '{key}' must be an object, got {type(value).__name__}")
    return value


def _get_dict_list(payload: dict[str, Any], key: str, where: str) -> list[dict[str, Any]]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedOutput(f"{where}: field '{key}' must be a list, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, dict):
            raise MalformedOutput(f"{where}: every entry of '{key}' must be an object")
    return value


def _get_int(payload: dict[str, Any], key: str, where: str) -> int:
    value = payload.get(key)
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise MalformedOutput(f"{where}: field '{key}' must be a number, got bool")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError as exc:
            raise MalformedOutput(f"{where}: field '{key}' is not a number: {value!r}", cause=exc) from exc
    raise MalformedOutput(f"{where}: field '{key}' must be a number, got {type(value).__name__}")


def count_words(text: str) -> int:
    """Whitespace-token count, the only word count the pipeline trusts."""
    return len(text.split())


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Document:
    """Raw paper text submitted for one run."""

    content: str

    def __post_init__(self) -> None:
        if not isinstance(self.content, str) or not self.content.strip():
            raise InputRejected("Paper content is required")

    @property
    def word_count(self) -> int:
        return count_words(self.content)


# ---------------------------------------------------------------------------
# Analyzer output
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Methodology:
    approach: str
    data_collection: str
    analysis: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Methodology:
        where = "methodology"
        return cls(
            approach=_get_str(payload, "approach", where, required=True),
            data_collection=_get_str(payload, "dataCollection", where),
            analysis=_get_str(payload, "analysis", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "approach": self.approach,
            "dataCollection": self.data_collection,
            "analysis": self.analysis,
        }


@dataclass(frozen=True, slots=True)
class AnalysisRecord:
    title: str
    abstract: str
    key_findings: tuple[str, ...]
    methodology: Methodology
    main_topics: tuple[str, ...]
    technical_terms: tuple[str, ...]
    conclusions: str
    citations: int
    word_count: int

    @classmethod
    def from_payload(cls, payload: dict[str, Any], word_count: int) -> AnalysisRecord:
        where = "analysis"
        return cls(
            title=_get_str(payload, "title", where, required=True),
            abstract=_get_str(payload, "abstract", where, required=True),
            key_findings=_get_str_list(payload, "keyFindings", where, non_empty=True),
            methodology=Methodology.from_payload(_get_dict(payload, "methodology", where, required=True)),
            main_topics=_get_str_list(payload, "mainTopics", where, non_empty=True),
            technical_terms=_get_str_list(payload, "technicalTerms", where),
            conclusions=_get_str(payload, "conclusions", where, required=True),
            citations=_get_int(payload, "citations", where),
            word_count=word_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "abstract": self.abstract,
            "keyFindings": list(self.key_findings),
            "methodology": self.methodology.to_dict(),
            "mainTopics": list(self.main_topics),
            "technicalTerms": list(self.technical_terms),
            "conclusions": self.conclusions,
            "citations": self.citations,
            "wordCount": self.word_count,
        }


# ---------------------------------------------------------------------------
# Simplifier output
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Section:
    heading: str
    content: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Section:
        where = "section"
        return cls(
            heading=_get_str(payload, "heading", where, required=True),
            content=_get_str(payload, "content", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"heading": self.heading, "content": self.content}


@dataclass(frozen=True, slots=True)
class SimplifiedRecord:
    title: str
    hook: str
    introduction: str
    sections: tuple[Section, ...]
    call_to_action: str
    reading_time: str
    target_audience: str
    tone: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SimplifiedRecord:
        where = "simplified"
        sections = tuple(Section.from_payload(item) for item in _get_dict_list(payload, "sections", where))
        if not sections:
            raise MalformedOutput(f"{where}: field 'sections' must not be empty")
        return cls(
            title=_get_str(payload, "title", where, required=True),
            hook=_get_str(payload, "hook", where),
            introduction=_get_str(payload, "introduction", where, required=True),
            sections=sections,
            call_to_action=_get_str(payload, "callToAction", where),
            reading_time=_get_str(payload, "readingTime", where),
            target_audience=_get_str(payload, "targetAudience", where),
            tone=_get_str(payload, "tone", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "hook": self.hook,
            "introduction": self.introduction,
            "sections": [section.to_dict() for section in self.sections],
            "callToAction": self.call_to_action,
            "readingTime": self.reading_time,
            "targetAudience": self.target_audience,
            "tone": self.tone,
        }


# ---------------------------------------------------------------------------
# Visual plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HeroImage:
    prompt: str = ""
    url: str = ""
    alt: str = ""
    caption: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> HeroImage:
        where = "heroImage"
        return cls(
            prompt=_get_str(payload, "prompt", where),
            url=_get_str(payload, "url", where),
            alt=_get_str(payload, "alt", where),
            caption=_get_str(payload, "caption", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class DiagramSpec:
    type: str
    description: str
    prompt: str
    url: str
    suggestion: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DiagramSpec:
        where = "diagram"
        return cls(
            type=_get_str(payload, "type", where),
            description=_get_str(payload, "description", where),
            prompt=_get_str(payload, "prompt", where),
            url=_get_str(payload, "url", where),
            suggestion=_get_str(payload, "suggestion", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class InfographicElement:
    label: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "value": self.value}


@dataclass(frozen=True, slots=True)
class Infographic:
    title: str
    elements: tuple[InfographicElement, ...]
    layout: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Infographic:
        where = "infographic"
        elements = tuple(
            InfographicElement(
                label=_get_str(item, "label", where),
                value=_get_str(item, "value", where),
            )
            for item in _get_dict_list(payload, "elements", where)
        )
        return cls(
            title=_get_str(payload, "title", where),
            elements=elements,
            layout=_get_str(payload, "layout", where) or "grid",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "elements": [element.to_dict() for element in self.elements],
            "layout": self.layout,
        }


@dataclass(frozen=True, slots=True)
class VisualPlan:
    hero_image: HeroImage
    diagrams: tuple[DiagramSpec, ...]
    infographics: tuple[Infographic, ...]
    image_prompts: tuple[str, ...]
    design_suggestions: tuple[str, ...]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> VisualPlan:
        where = "visuals"
        return cls(
            hero_image=HeroImage.from_payload(_get_dict(payload, "heroImage", where)),
            diagrams=tuple(DiagramSpec.from_payload(item) for item in _get_dict_list(payload, "diagrams", where)),
            infographics=tuple(
                Infographic.from_payload(item) for item in _get_dict_list(payload, "infographics", where)
            ),
            image_prompts=_get_str_list(payload, "imagePrompts", where),
            design_suggestions=_get_str_list(payload, "designSuggestions", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "heroImage": self.hero_image.to_dict(),
            "diagrams": [diagram.to_dict() for diagram in self.diagrams],
            "infographics": [infographic.to_dict() for infographic in self.infographics],
            "imagePrompts": list(self.image_prompts),
            "designSuggestions": list(self.design_suggestions),
        }


# ---------------------------------------------------------------------------
# Publish artifact
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SeoBlock:
    title: str
    meta_description: str
    keywords: tuple[str, ...]
    slug: str
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    twitter_card: str = "summary_large_image"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SeoBlock:
        where = "seo"
        return cls(
            title=_get_str(payload, "title", where, required=True),
            meta_description=_get_str(payload, "metaDescription", where),
            keywords=_get_str_list(payload, "keywords", where),
            slug=_get_str(payload, "slug", where),
            og_title=_get_str(payload, "ogTitle", where),
            og_description=_get_str(payload, "ogDescription", where),
            og_image=_get_str(payload, "ogImage", where),
            twitter_card=_get_str(payload, "twitterCard", where) or "summary_large_image",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "metaDescription": self.meta_description,
            "keywords": list(self.keywords),
            "slug": self.slug,
            "ogTitle": self.og_title,
            "ogDescription": self.og_description,
            "ogImage": self.og_image,
            "twitterCard": self.twitter_card,
        }


@dataclass(frozen=True, slots=True)
class ContentBlock:
    title: str
    subtitle: str
    hero_image: HeroImage
    introduction: str
    sections: tuple[Section, ...]
    visuals: tuple[DiagramSpec, ...]
    infographics: tuple[Infographic, ...]
    call_to_action: str
    reading_time: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ContentBlock:
        where = "content"
        return cls(
            title=_get_str(payload, "title", where, required=True),
            subtitle=_get_str(payload, "subtitle", where),
            hero_image=HeroImage.from_payload(_get_dict(payload, "heroImage", where)),
            introduction=_get_str(payload, "introduction", where),
            sections=tuple(Section.from_payload(item) for item in _get_dict_list(payload, "sections", where)),
            visuals=tuple(DiagramSpec.from_payload(item) for item in _get_dict_list(payload, "visuals", where)),
            infographics=tuple(
                Infographic.from_payload(item) for item in _get_dict_list(payload, "infographics", where)
            ),
            call_to_action=_get_str(payload, "callToAction", where),
            reading_time=_get_str(payload, "readingTime", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "heroImage": self.hero_image.to_dict(),
            "introduction": self.introduction,
            "sections": [section.to_dict() for section in self.sections],
            "visuals": [visual.to_dict() for visual in self.visuals],
            "infographics": [infographic.to_dict() for infographic in self.infographics],
            "callToAction": self.call_to_action,
            "readingTime": self.reading_time,
        }


@dataclass(frozen=True, slots=True)
class SocialSnippets:
    twitter: str = ""
    linkedin: str = ""
    facebook: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class EngagementBlock:
    headlines: tuple[str, ...] = ()
    pull_quotes: tuple[str, ...] = ()
    social_snippets: SocialSnippets = field(default_factory=SocialSnippets)
    tags: tuple[str, ...] = ()
    related_topics: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EngagementBlock:
        where = "engagement"
        snippets = _get_dict(payload, "socialSnippets", where)
        return cls(
            headlines=_get_str_list(payload, "headlines", where),
            pull_quotes=_get_str_list(payload, "pullQuotes", where),
            social_snippets=SocialSnippets(
                twitter=_get_str(snippets, "twitter", "socialSnippets"),
                linkedin=_get_str(snippets, "linkedin", "socialSnippets"),
                facebook=_get_str(snippets, "facebook", "socialSnippets"),
            ),
            tags=_get_str_list(payload, "tags", where),
            related_topics=_get_str_list(payload, "relatedTopics", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "headlines": list(self.headlines),
            "pullQuotes": list(self.pull_quotes),
            "socialSnippets": self.social_snippets.to_dict(),
            "tags": list(self.tags),
            "relatedTopics": list(self.related_topics),
        }


@dataclass(frozen=True, slots=True)
class Readability:
    score: str = ""
    improvements: tuple[str, ...] = ()
    target_score: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Readability:
        where = "readability"
        return cls(
            score=_get_str(payload, "score", where),
            improvements=_get_str_list(payload, "improvements", where),
            target_score=_get_str(payload, "targetScore", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "improvements": list(self.improvements),
            "targetScore": self.target_score,
        }


@dataclass(frozen=True, slots=True)
class Analytics:
    estimated_page_views: str = ""
    shareability: str = ""
    bounce_rate_estimate: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Analytics:
        where = "analytics"
        return cls(
            estimated_page_views=_get_str(payload, "estimatedPageViews", where),
            shareability=_get_str(payload, "shareability", where),
            bounce_rate_estimate=_get_str(payload, "bounceRateEstimate", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimatedPageViews": self.estimated_page_views,
            "shareability": self.shareability,
            "bounceRateEstimate": self.bounce_rate_estimate,
        }


@dataclass(frozen=True, slots=True)
class PublishArtifact:
    """Terminal output of a run: SEO metadata, merged content, engagement extras."""

    seo: SeoBlock
    content: ContentBlock
    engagement: EngagementBlock
    readability: Readability
    analytics: Analytics
    published_date: str
    last_modified: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PublishArtifact:
        where = "artifact"
        return cls(
            seo=SeoBlock.from_payload(_get_dict(payload, "seo", where, required=True)),
            content=ContentBlock.from_payload(_get_dict(payload, "content", where, required=True)),
            engagement=EngagementBlock.from_payload(_get_dict(payload, "engagement", where)),
            readability=Readability.from_payload(_get_dict(payload, "readability", where)),
            analytics=Analytics.from_payload(_get_dict(payload, "analytics", where)),
            published_date=_get_str(payload, "publishedDate", where, strip=False),
            last_modified=_get_str(payload, "lastModified", where, strip=False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "seo": self.seo.to_dict(),
            "content": self.content.to_dict(),
            "engagement": self.engagement.to_dict(),
            "readability": self.readability.to_dict(),
            "analytics": self.analytics.to_dict(),
            "publishedDate": self.published_date,
            "lastModified": self.last_modified,
        }
