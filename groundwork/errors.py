from __future__ import annotations


class PipelineError(Exception):
    """A checkpoint failure surfaced to the caller of the pipeline."""

    checkpoint: str = "pipeline"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"checkpoint": self.checkpoint, "message": self.message}


class NoSourcesFoundError(PipelineError):
    checkpoint = "search"


class NoPrimarySourcesError(PipelineError):
    checkpoint = "primary_sources"


class ValidationFailedError(PipelineError):
    checkpoint = "validation"


class FetchError(RuntimeError):
    """Every direct and proxy fetch strategy failed for a URL."""

    def __init__(self, url: str, last_error: Exception | str | None = None):
        self.url = url
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"All direct and proxy fetch attempts failed for URL: {url}{detail}")


class DeadlineExceeded(TimeoutError):
    """The call deadline expired before the next network request could start."""


class StructuredReplyError(ValueError):
    """A model reply did not contain a decodable JSON payload."""
