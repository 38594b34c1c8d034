"""Error taxonomy for the paper-to-blog pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error the pipeline raises on purpose."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InputRejected(PipelineError):
    """The document is missing, empty, or ingestion produced too little text.

    Always user-correctable: the caller should ask for a different file or a
    manual paste. Never reaches a stage.
    """


class MalformedOutput(PipelineError):
    """The backend reply could not be parsed into the expected record shape."""


class BackendRejected(PipelineError):
    """The generative service refused the request (bad credentials, bad request)."""


class BackendUnavailable(PipelineError):
    """Rate limiting or a transient transport failure. The caller may re-run."""


class StageFailed(PipelineError):
    """A stage error tagged with the name of the stage that raised it."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        detail = cause.message if isinstance(cause, PipelineError) else str(cause)
        super().__init__(f"Pipeline failed during {stage}: {detail}", cause=cause)
        self.stage = stage

    @property
    def retryable(self) -> bool:
        return isinstance(self.cause, BackendUnavailable)
