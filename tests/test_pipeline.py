from __future__ import annotations

import json

import pytest

from errors import BackendRejected, BackendUnavailable, MalformedOutput, StageFailed
from fakes import (
    PAPER_TEXT,
    FakeClient,
    analysis_payload,
    full_run_replies,
    optimized_payload,
    simplified_payload,
    visuals_payload,
    wrap_in_prose,
)
from models import Document
from pipeline import PipelineController, PipelineState, RunParams, run_pipeline


def test_advance_steps_through_every_state() -> None:
    controller = PipelineController(FakeClient(full_run_replies()))
    ctx = controller.start(Document(PAPER_TEXT))
    assert ctx.state is PipelineState.IDLE

    seen = []
    while not ctx.state.is_terminal:
        controller.advance(ctx)
        seen.append(ctx.state)

    assert seen == [
        PipelineState.ANALYZING,
        PipelineState.SIMPLIFYING,
        PipelineState.VISUALIZING,
        PipelineState.OPTIMIZING,
        PipelineState.COMPLETE,
    ]
    assert ctx.succeeded
    assert ctx.failure is None
    assert ctx.artifact is not None


def test_records_appear_one_stage_at_a_time() -> None:
    controller = PipelineController(FakeClient(full_run_replies()))
    ctx = controller.start(Document(PAPER_TEXT))

    controller.advance(ctx)  # Idle -> Analyzing, no backend call
    assert ctx.analysis is None

    controller.advance(ctx)
    assert ctx.state is PipelineState.SIMPLIFYING
    assert ctx.analysis is not None
    assert ctx.simplified is None

    controller.advance(ctx)
    assert ctx.simplified is not None
    assert ctx.visuals is None


def test_five_hundred_word_paper_with_defaults() -> None:
    text = " ".join(["protein"] * 500)
    optimized = optimized_payload()
    optimized["seo"] = {**optimized["seo"], "keywords": []}
    replies = full_run_replies()
    replies[3] = json.dumps(optimized)
    client = FakeClient(replies)

    artifact = run_pipeline(Document(text), client)

    assert set(artifact.seo.keywords) == {"research", "science", "innovation"}
    assert len(client.calls) == 4
    assert [call["temperature"] for call in client.calls] == [0.3, 0.7, 0.7, 0.5]
    assert "**Target Audience:** General public" in client.calls[1]["prompt"]
    assert "**Tone:** Engaging" in client.calls[1]["prompt"]
    assert "**Keywords:** research, science, innovation" in client.calls[3]["prompt"]
    assert len(artifact.content.sections) >= 4
    assert artifact.seo.slug == "ai-folds-proteins"


def test_analysis_word_count_comes_from_document() -> None:
    text = " ".join(["protein"] * 500)
    controller = PipelineController(FakeClient(full_run_replies()))
    ctx = controller.start(Document(text))
    controller.advance(ctx)
    controller.advance(ctx)
    assert ctx.analysis.word_count == 500


def test_analyzer_failure_stops_the_run() -> None:
    client = FakeClient(["no json at all"])
    controller = PipelineController(client)

    ctx = controller.run(Document(PAPER_TEXT))

    assert ctx.state is PipelineState.FAILED
    assert len(client.calls) == 1
    assert ctx.artifact is None
    assert ctx.failure.stage == "Analyzing"
    assert isinstance(ctx.failure.cause, MalformedOutput)


def test_failure_discards_earlier_records() -> None:
    client = FakeClient([
        wrap_in_prose(analysis_payload()),
        json.dumps(simplified_payload()),
        BackendUnavailable("Rate limit exceeded. Please try again later."),
    ])
    controller = PipelineController(client)

    ctx = controller.run(Document(PAPER_TEXT))

    assert ctx.state is PipelineState.FAILED
    assert ctx.failure.stage == "Visualizing"
    assert ctx.failure.retryable
    assert ctx.analysis is None
    assert ctx.simplified is None
    assert ctx.visuals is None
    assert ctx.artifact is None


def test_optimizer_malformed_output_is_tagged() -> None:
    bad = optimized_payload()
    del bad["seo"]
    client = FakeClient(full_run_replies()[:3] + [json.dumps(bad)])

    with pytest.raises(StageFailed) as excinfo:
        run_pipeline(Document(PAPER_TEXT), client)

    assert excinfo.value.stage == "Optimizing"
    assert not excinfo.value.retryable
    assert "Optimizing" in excinfo.value.message


def test_backend_rejection_is_not_retryable() -> None:
    client = FakeClient([BackendRejected("Invalid API key. Please check your configuration.")])
    with pytest.raises(StageFailed) as excinfo:
        run_pipeline(Document(PAPER_TEXT), client)
    assert excinfo.value.stage == "Analyzing"
    assert not excinfo.value.retryable
    assert isinstance(excinfo.value.cause, BackendRejected)


def test_unexpected_stage_exception_becomes_stage_failure() -> None:
    client = FakeClient([RuntimeError("kaboom")])
    controller = PipelineController(client)

    ctx = controller.run(Document(PAPER_TEXT))

    assert ctx.state is PipelineState.FAILED
    assert ctx.failure.stage == "Analyzing"
    assert "kaboom" in ctx.failure.message


def test_advance_on_finished_run_raises() -> None:
    controller = PipelineController(FakeClient(full_run_replies()))
    ctx = controller.run(Document(PAPER_TEXT))
    with pytest.raises(ValueError):
        controller.advance(ctx)


def test_transition_callback_sees_every_state() -> None:
    seen: list[str] = []
    run_pipeline(
        Document(PAPER_TEXT),
        FakeClient(full_run_replies()),
        on_transition=lambda state, ctx: seen.append(state.value),
    )
    assert seen == ["Analyzing", "Simplifying", "Visualizing", "Optimizing", "Complete"]


def test_run_params_flow_into_prompts() -> None:
    client = FakeClient(full_run_replies())
    controller = PipelineController(client)
    params = RunParams(target_audience="Students", tone="Playful", keywords="folding, ai")

    ctx = controller.run(Document(PAPER_TEXT), params)

    assert ctx.succeeded
    assert "**Target Audience:** Students" in client.calls[1]["prompt"]
    assert "**Tone:** Playful" in client.calls[1]["prompt"]
    assert "**Keywords:** folding, ai" in client.calls[3]["prompt"]


def test_runs_do_not_share_state() -> None:
    controller = PipelineController(FakeClient(full_run_replies() + ["garbage"]))
    first = controller.run(Document(PAPER_TEXT))
    second = controller.run(Document(PAPER_TEXT))

    assert first.succeeded
    assert first.artifact is not None
    assert second.state is PipelineState.FAILED
    assert second.analysis is None


def test_visual_plan_counts_are_not_enforced() -> None:
    sparse = visuals_payload(diagrams=[], infographics=[], imagePrompts=[])
    replies = full_run_replies()
    replies[2] = json.dumps(sparse)
    artifact = run_pipeline(Document(PAPER_TEXT), FakeClient(replies))
    assert artifact.seo.title
