"""CLI entrypoint for the research paper to blog post pipeline."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from artifact_store import load_artifact, save_artifact
from errors import BackendRejected, InputRejected, MalformedOutput, StageFailed
from ingest import fetch_url, load_path, make_document
from llm_client import get_client
from markdown_export import export_markdown, render_markdown
from pipeline import PipelineState, RunContext, run_pipeline
from simplifier import DEFAULT_AUDIENCE, DEFAULT_TONE

EXIT_OK = 0
EXIT_PIPELINE_FAILED = 1
EXIT_INPUT_REJECTED = 2

_STEP_LABELS = {
    PipelineState.ANALYZING: "Paper Analysis: extracting key findings & methodology",
    PipelineState.SIMPLIFYING: "Simplification: translating to plain English",
    PipelineState.VISUALIZING: "Visual Design: generating diagrams & images",
    PipelineState.OPTIMIZING: "SEO Optimization: enhancing discoverability",
    PipelineState.COMPLETE: "Complete: blog post ready!",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Turn a research paper into an SEO-ready blog post")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Paper text pasted directly")
    source.add_argument("--file", help="Path to a PDF, image (JPEG, PNG, WebP) or text file")
    source.add_argument("--url", help="URL of a PDF, image or text document to download")
    source.add_argument("--from-stdin", action="store_true", help="Read paper text from standard input")
    source.add_argument("--show-last", action="store_true", help="Print the last saved blog post as markdown")
    parser.add_argument("--audience", default=DEFAULT_AUDIENCE, help="Target audience, e.g. 'Tech enthusiasts'")
    parser.add_argument("--tone", default=DEFAULT_TONE, help="Tone, e.g. 'Casual', 'Professional'")
    parser.add_argument("--keywords", default="", help="Comma-separated SEO keywords")
    parser.add_argument("--output-dir", default=None, help="Also write <slug>.md into this directory")
    parser.add_argument("--provider", default=None, choices=["openai", "anthropic"], help="Generative backend")
    parser.add_argument("--no-save", action="store_true", help="Do not overwrite the saved blog post")
    return parser.parse_args(argv)


def _report_progress(state: PipelineState, ctx: RunContext) -> None:
    label = _STEP_LABELS.get(state)
    if label:
        logging.info("Step: %s", label)


def run(args: argparse.Namespace) -> int:
    """Execute one CLI invocation and return the process exit code."""
    if args.show_last:
        try:
            artifact = load_artifact()
        except MalformedOutput as exc:
            print(exc.message, file=sys.stderr)
            return EXIT_INPUT_REJECTED
        if artifact is None:
            print("No blog post has been generated yet.", file=sys.stderr)
            return EXIT_INPUT_REJECTED
        print(render_markdown(artifact))
        return EXIT_OK

    try:
        if args.file:
            document = load_path(args.file)
        elif args.url:
            document = fetch_url(args.url)
        elif args.from_stdin:
            document = make_document(sys.stdin.read())
        else:
            document = make_document(args.text)
    except InputRejected as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_INPUT_REJECTED

    try:
        client = get_client(args.provider)
    except BackendRejected as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_PIPELINE_FAILED

    try:
        artifact = run_pipeline(
            document,
            client,
            target_audience=args.audience,
            tone=args.tone,
            keywords=args.keywords,
            on_transition=_report_progress,
        )
    except StageFailed as exc:
        print(exc.message, file=sys.stderr)
        if exc.retryable:
            print("This looks temporary; re-run the pipeline to try again.", file=sys.stderr)
        return EXIT_PIPELINE_FAILED

    if not args.no_save:
        save_artifact(artifact)
    if args.output_dir:
        export_markdown(artifact, args.output_dir)
    print(render_markdown(artifact))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the pipeline."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    return run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
