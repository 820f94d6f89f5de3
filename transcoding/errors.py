"""
Error taxonomy for the transcoding worker.

Every failure carries a `retryable` flag. The queue consumer is the only place
that turns an error into a broker disposition (ack / requeue / drop).
"""


class PipelineError(Exception):
    retryable = True


class ConfigurationError(PipelineError):
    """Bad ladder entry, unusable workspace root or invalid startup settings."""
    retryable = False


class TransientIOError(PipelineError):
    """Fetch, encoder, upload or local filesystem failure. Safe to retry."""
    retryable = True


class MalformedMessageError(PipelineError):
    """Payload that can never be decoded. Dropped, never requeued."""
    retryable = False


class JobFailed(PipelineError):
    """A job phase failed; wraps the underlying error with the phase name."""

    def __init__(self, job_id: str, phase: str, cause: BaseException):
        self.job_id = job_id
        self.phase = phase
        self.cause = cause
        super().__init__(f"job {job_id} failed during {phase}: {cause}")

    @property
    def retryable(self) -> bool:
        return getattr(self.cause, "retryable", True)
