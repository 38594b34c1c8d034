"""Single-slot store for the most recent successful PublishArtifact."""

from __future__ import annotations

import json
import logging
import os
from json import JSONDecodeError
from pathlib import Path

from errors import MalformedOutput
from models import PublishArtifact

DEFAULT_ARTIFACT_PATH = "blog_post.json"

LOGGER = logging.getLogger(__name__)


def save_artifact(artifact: PublishArtifact, path: str | Path | None = None) -> Path:
    """Overwrite the slot with ``artifact`` (last write wins)."""
    target = _resolve(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f".{target.name}.tmp")
    tmp.write_text(json.dumps(artifact.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, target)
    LOGGER.info("Saved blog post %r to %s", artifact.seo.slug, target)
    return target


def load_artifact(path: str | Path | None = None) -> PublishArtifact | None:
    """Return the stored artifact, or None when the slot is empty."""
    source = _resolve(path)
    if not source.exists():
        return None
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except JSONDecodeError as exc:
        raise MalformedOutput(f"Stored blog post at {source} is not valid JSON", cause=exc) from exc
    if not isinstance(payload, dict):
        raise MalformedOutput(f"Stored blog post at {source} is not a JSON object")
    return PublishArtifact.from_payload(payload)


def clear_artifact(path: str | Path | None = None) -> None:
    _resolve(path).unlink(missing_ok=True)


def _resolve(path: str | Path | None) -> Path:
    return Path(path or os.getenv("ARTIFACT_PATH", DEFAULT_ARTIFACT_PATH))
