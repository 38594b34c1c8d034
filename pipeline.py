"""Pipeline controller: the four-stage state machine for one paper-to-blog run.

    Idle -> Analyzing -> Simplifying -> Visualizing -> Optimizing -> Complete

Any stage can instead move the run to Failed. ``advance`` performs exactly
one transition, so callers can step through a run and inspect the state
between stages. A run is atomic: on the
first failure every record produced so far is dropped and only the tagged
error is kept. There is no retry here; recovery is a new run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from analyzer import analyze_document
from errors import InputRejected, PipelineError, StageFailed
from llm_client import LLMClient
from models import AnalysisRecord, Document, PublishArtifact, SimplifiedRecord, VisualPlan
from seo_optimizer import optimize_post
from simplifier import DEFAULT_AUDIENCE, DEFAULT_TONE, simplify_analysis
from visual_designer import suggest_visuals

LOGGER = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "Idle"
    ANALYZING = "Analyzing"
    SIMPLIFYING = "Simplifying"
    VISUALIZING = "Visualizing"
    OPTIMIZING = "Optimizing"
    COMPLETE = "Complete"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.COMPLETE, PipelineState.FAILED)


_NEXT_STATE: dict[PipelineState, PipelineState] = {
    PipelineState.IDLE: PipelineState.ANALYZING,
    PipelineState.ANALYZING: PipelineState.SIMPLIFYING,
    PipelineState.SIMPLIFYING: PipelineState.VISUALIZING,
    PipelineState.VISUALIZING: PipelineState.OPTIMIZING,
    PipelineState.OPTIMIZING: PipelineState.COMPLETE,
}


@dataclass(frozen=True, slots=True)
class RunParams:
    """Per-run knobs supplied alongside the document."""

    target_audience: str = DEFAULT_AUDIENCE
    tone: str = DEFAULT_TONE
    keywords: str = ""


@dataclass(slots=True)
class RunContext:
    """Everything one run owns. Never shared between runs."""

    document: Document
    params: RunParams
    state: PipelineState = PipelineState.IDLE
    analysis: AnalysisRecord | None = None
    simplified: SimplifiedRecord | None = None
    visuals: VisualPlan | None = None
    artifact: PublishArtifact | None = None
    failure: StageFailed | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.COMPLETE

    def discard_records(self) -> None:
        self.analysis = None
        self.simplified = None
        self.visuals = None
        self.artifact = None


TransitionCallback = Callable[[PipelineState, RunContext], None]


class PipelineController:
    """Drives RunContexts through the stages with one generation client.

    The controller itself holds no run state, so one instance can serve any
    number of independent runs.
    """

    def __init__(self, client: LLMClient, on_transition: TransitionCallback | None = None) -> None:
        self.client = client
        self.on_transition = on_transition

    def start(self, document: Document, params: RunParams | None = None) -> RunContext:
        return RunContext(document=document, params=params or RunParams())

    def advance(self, ctx: RunContext) -> RunContext:
        """Apply one transition to ``ctx`` and return it."""
        if ctx.state.is_terminal:
            raise ValueError(f"Run already finished in state {ctx.state.value}")

        if ctx.state is PipelineState.IDLE:
            self._enter(ctx, PipelineState.ANALYZING)
            return ctx

        stage = ctx.state
        try:
            self._run_stage(ctx, stage)
        except PipelineError as exc:
            LOGGER.error("Stage %s failed: %s", stage.value, exc.message)
            self._fail(ctx, stage, exc)
            return ctx
        except Exception as exc:  # unexpected bug inside a stage still fails only this run
            LOGGER.exception("Stage %s raised an unexpected error", stage.value)
            self._fail(ctx, stage, exc)
            return ctx

        self._enter(ctx, _NEXT_STATE[stage])
        return ctx

    def run(self, document: Document, params: RunParams | None = None) -> RunContext:
        """Run all stages until Complete or Failed."""
        ctx = self.start(document, params)
        LOGGER.info("Starting pipeline run (%s words)", document.word_count)
        while not ctx.state.is_terminal:
            self.advance(ctx)
        if ctx.succeeded:
            LOGGER.info("Pipeline run complete: slug=%r", ctx.artifact.seo.slug if ctx.artifact else "")
        return ctx

    def _run_stage(self, ctx: RunContext, stage: PipelineState) -> None:
        if stage is PipelineState.ANALYZING:
            ctx.analysis = analyze_document(ctx.document, self.client)
        elif stage is PipelineState.SIMPLIFYING:
            ctx.simplified = simplify_analysis(
                _require(ctx.analysis, "Analysis data is required"),
                self.client,
                target_audience=ctx.params.target_audience,
                tone=ctx.params.tone,
            )
        elif stage is PipelineState.VISUALIZING:
            ctx.visuals = suggest_visuals(
                _require(ctx.analysis, "Analysis data is required"),
                _require(ctx.simplified, "Simplified content is required"),
                self.client,
            )
        elif stage is PipelineState.OPTIMIZING:
            ctx.artifact = optimize_post(
                _require(ctx.simplified, "Simplified content is required"),
                _require(ctx.visuals, "Visuals are required"),
                self.client,
                keywords=ctx.params.keywords,
            )
        else:
            raise ValueError(f"No stage runs in state {stage.value}")

    def _enter(self, ctx: RunContext, state: PipelineState) -> None:
        LOGGER.info("Pipeline state %s -> %s", ctx.state.value, state.value)
        ctx.state = state
        if self.on_transition is not None:
            self.on_transition(state, ctx)

    def _fail(self, ctx: RunContext, stage: PipelineState, error: BaseException) -> None:
        ctx.discard_records()
        ctx.failure = StageFailed(stage.value, error)
        self._enter(ctx, PipelineState.FAILED)


def _require(record, message: str):
    if record is None:
        raise InputRejected(message)
    return record


def run_pipeline(
    document: Document,
    client: LLMClient,
    target_audience: str = DEFAULT_AUDIENCE,
    tone: str = DEFAULT_TONE,
    keywords: str = "",
    on_transition: TransitionCallback | None = None,
) -> PublishArtifact:
    """Entry point: return the PublishArtifact or raise StageFailed."""
    controller = PipelineController(client, on_transition=on_transition)
    ctx = controller.run(document, RunParams(target_audience=target_audience, tone=tone, keywords=keywords))
    if ctx.failure is not None:
        raise ctx.failure
    if ctx.artifact is None:
        raise RuntimeError("Pipeline finished without an artifact")
    return ctx.artifact
