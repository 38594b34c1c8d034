"""Tests for the four stage functions, each run against a scripted FakeClient."""

from __future__ import annotations

import json
import math
from datetime import datetime

import pytest

from analyzer import analyze_document
from errors import BackendUnavailable, InputRejected, MalformedOutput
from fakes import (
    PAPER_TEXT,
    FakeClient,
    analysis_payload,
    optimized_payload,
    simplified_payload,
    visuals_payload,
    wrap_in_prose,
)
from models import AnalysisRecord, Document, SimplifiedRecord, VisualPlan
from seo_optimizer import DEFAULT_KEYWORDS, optimize_post, parse_keywords
from simplifier import estimate_reading_time, simplify_analysis
from visual_designer import suggest_visuals

_ANALYSIS = AnalysisRecord.from_payload(analysis_payload(), word_count=120)
_SIMPLIFIED = SimplifiedRecord.from_payload(simplified_payload())
_VISUALS = VisualPlan.from_payload(visuals_payload())


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

def test_analyzer_overwrites_backend_word_count() -> None:
    document = Document(PAPER_TEXT)
    client = FakeClient([wrap_in_prose(analysis_payload(wordCount=3))])

    record = analyze_document(document, client)

    assert record.word_count == len(PAPER_TEXT.split())
    assert record.title == "Transformers Fold Proteins"
    assert client.calls[0]["temperature"] == 0.3
    assert PAPER_TEXT in client.calls[0]["prompt"]


def test_analyzer_no_json_is_malformed_output() -> None:
    client = FakeClient(["I'm sorry, I cannot analyze this paper."])
    with pytest.raises(MalformedOutput):
        analyze_document(Document(PAPER_TEXT), client)


def test_analyzer_rejects_empty_findings() -> None:
    client = FakeClient([json.dumps(analysis_payload(keyFindings=[]))])
    with pytest.raises(MalformedOutput, match="keyFindings"):
        analyze_document(Document(PAPER_TEXT), client)


def test_analyzer_propagates_backend_errors_unchanged() -> None:
    error = BackendUnavailable("Rate limit exceeded. Please try again later.")
    client = FakeClient([error])
    with pytest.raises(BackendUnavailable) as excinfo:
        analyze_document(Document(PAPER_TEXT), client)
    assert excinfo.value is error


# ---------------------------------------------------------------------------
# Simplifier
# ---------------------------------------------------------------------------

def test_simplifier_keeps_backend_reading_time() -> None:
    client = FakeClient([json.dumps(simplified_payload())])
    record = simplify_analysis(_ANALYSIS, client, target_audience="Tech enthusiasts", tone="Casual")

    assert record.reading_time == "4 min read"
    assert len(record.sections) == 4
    prompt = client.calls[0]["prompt"]
    assert "**Target Audience:** Tech enthusiasts" in prompt
    assert "**Tone:** Casual" in prompt
    assert "Transformers Fold Proteins" in prompt
    assert client.calls[0]["temperature"] == 0.7


def test_simplifier_estimates_missing_reading_time() -> None:
    long_section = {"heading": "Deep dive", "content": "word " * 450}
    payload = simplified_payload(sections=simplified_payload()["sections"] + [long_section])
    del payload["readingTime"]
    client = FakeClient([json.dumps(payload)])

    record = simplify_analysis(_ANALYSIS, client)

    serialized = json.dumps(record.to_dict() | {"readingTime": ""}, separators=(",", ":"))
    expected = math.ceil(len(serialized.split()) / 200)
    assert record.reading_time == f"{expected} min read"
    assert expected >= 3


def test_simplifier_treats_blank_reading_time_as_missing() -> None:
    client = FakeClient([json.dumps(simplified_payload(readingTime="  "))])
    record = simplify_analysis(_ANALYSIS, client)
    assert record.reading_time.endswith(" min read")


def test_estimate_reading_time_rounds_up() -> None:
    payload = {"text": " ".join(["w"] * 201)}
    assert estimate_reading_time(payload) == "2 min read"


def test_simplifier_without_analysis_fails_fast() -> None:
    client = FakeClient([])
    with pytest.raises(InputRejected):
        simplify_analysis(None, client)
    assert client.calls == []


def test_simplifier_accepts_fewer_sections_than_requested() -> None:
    payload = simplified_payload(sections=simplified_payload()["sections"][:2])
    record = simplify_analysis(_ANALYSIS, FakeClient([json.dumps(payload)]))
    assert len(record.sections) == 2


# ---------------------------------------------------------------------------
# Visual suggestions
# ---------------------------------------------------------------------------

def test_visuals_accepts_miscounted_lists() -> None:
    # one diagram instead of three, one prompt instead of five
    client = FakeClient([wrap_in_prose(visuals_payload())])
    plan = suggest_visuals(_ANALYSIS, _SIMPLIFIED, client)

    assert len(plan.diagrams) == 1
    assert plan.hero_image.alt == "Folded protein"
    prompt = client.calls[0]["prompt"]
    assert "**Analysis:**" in prompt
    assert "**Simplified Content:**" in prompt


def test_visuals_parse_failure_is_fatal() -> None:
    client = FakeClient(["Here are some ideas: a hero image of a protein."])
    with pytest.raises(MalformedOutput):
        suggest_visuals(_ANALYSIS, _SIMPLIFIED, client)


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw", ["", "   ", ", ,", None])
def test_parse_keywords_defaults(raw: str | None) -> None:
    assert parse_keywords(raw) == list(DEFAULT_KEYWORDS)


def test_parse_keywords_splits_and_trims() -> None:
    assert parse_keywords(" ai, machine learning ,,research ") == ["ai", "machine learning", "research"]


def test_optimizer_sends_default_keywords_and_fills_empty_seo_keywords() -> None:
    payload = optimized_payload()
    payload["seo"] = {**payload["seo"], "keywords": []}
    client = FakeClient([json.dumps(payload)])

    artifact = optimize_post(_SIMPLIFIED, _VISUALS, client, keywords="")

    assert set(artifact.seo.keywords) == {"research", "science", "innovation"}
    assert "**Keywords:** research, science, innovation" in client.calls[0]["prompt"]
    assert client.calls[0]["temperature"] == 0.5


def test_optimizer_preserves_backend_timestamps() -> None:
    client = FakeClient([json.dumps(optimized_payload())])
    artifact = optimize_post(_SIMPLIFIED, _VISUALS, client, keywords="ai")

    assert artifact.published_date == "2026-01-02T03:04:05+00:00"
    assert artifact.last_modified == "2026-01-03T03:04:05+00:00"
    assert artifact.seo.keywords == ("protein folding", "AI")


def test_optimizer_fills_missing_timestamps_with_one_shared_now() -> None:
    payload = optimized_payload()
    del payload["publishedDate"]
    payload["lastModified"] = ""
    client = FakeClient([json.dumps(payload)])

    artifact = optimize_post(_SIMPLIFIED, _VISUALS, client)

    assert artifact.published_date == artifact.last_modified
    assert datetime.fromisoformat(artifact.published_date).tzinfo is not None


def test_optimizer_fills_only_the_missing_timestamp() -> None:
    payload = optimized_payload()
    del payload["lastModified"]
    artifact = optimize_post(_SIMPLIFIED, _VISUALS, FakeClient([json.dumps(payload)]))

    assert artifact.published_date == "2026-01-02T03:04:05+00:00"
    assert artifact.last_modified != artifact.published_date


def test_optimizer_does_not_truncate_long_titles() -> None:
    long_title = "A" * 80
    payload = optimized_payload()
    payload["seo"] = {**payload["seo"], "title": long_title}
    artifact = optimize_post(_SIMPLIFIED, _VISUALS, FakeClient([json.dumps(payload)]))
    assert artifact.seo.title == long_title


def test_optimizer_keeps_backend_timestamps_verbatim() -> None:
    payload = optimized_payload(publishedDate=" 2026-01-02 ", lastModified=1767323045)
    artifact = optimize_post(_SIMPLIFIED, _VISUALS, FakeClient([json.dumps(payload)]))

    assert artifact.published_date == " 2026-01-02 "
    assert artifact.last_modified == "1767323045"


def test_simplifier_no_json_is_malformed_output() -> None:
    client = FakeClient(["Sure, here is a friendlier version of the paper."])
    with pytest.raises(MalformedOutput):
        simplify_analysis(_ANALYSIS, client)


def test_optimizer_no_json_is_malformed_output() -> None:
    client = FakeClient(["Title: AI Folds Proteins. Keywords: ai, biology."])
    with pytest.raises(MalformedOutput):
        optimize_post(_SIMPLIFIED, _VISUALS, client)
